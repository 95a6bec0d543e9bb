from __future__ import annotations

import importlib
import logging
import signal
import threading

from dotenv import load_dotenv

from config import get_settings_module

from .container import Container, build_container
from .main import configure_logging

logger = logging.getLogger(__name__)


def run_worker(container: Container, stop: threading.Event) -> None:
    container.scheduler.start()
    logger.info("Job worker started for queue %s", container.review_queue.queue_name)
    try:
        stop.wait()
    finally:
        try:
            container.scheduler.stop()
        finally:
            container.erp.close()
    logger.info("Job worker stopped")


def main() -> int:
    """Run the deferred job worker until SIGINT/SIGTERM."""
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    container = build_container(
        master_db_config=getattr(settings, "MASTER_DB_CONFIG"),
        tenant_db_defaults=getattr(settings, "TENANT_DB_DEFAULTS", None),
        erp_config=getattr(settings, "ERP_CONFIG", {}),
        jobs_config=getattr(settings, "JOBS_CONFIG", {}),
    )

    stop = threading.Event()

    def _shutdown(signum, _frame):
        logger.info("Received signal %s, draining job worker", signum)
        stop.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    run_worker(container, stop)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
