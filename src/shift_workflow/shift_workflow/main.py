from __future__ import annotations

import importlib
import logging

from dotenv import load_dotenv
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from config import get_settings_module

from .container import Container, build_container
from .core.exceptions import DomainError
from .database.bootstrap import apply_master_schema, apply_tenant_schema, list_tables
from .database.connection import DBConfig

from .authorizations.controller import register as register_authorizations
from .exchanges.controller import register as register_exchanges
from .ingestion.controller import register as register_ingestion
from .shifts.controller import register as register_shifts

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def init_databases(container: Container, *, master: DBConfig, tenant_template: DBConfig) -> None:
    apply_master_schema(master)
    logger.info("Master schema ready (tables=%s)", len(list_tables(master)))
    for company in container.directory_repo.list_active_companies():
        apply_tenant_schema(tenant_template.for_database(company.db_name))


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        return jsonify({"success": False, "error": str(exc)}), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"success": False, "error": exc.description}), exc.code


def create_app(container: Container | None = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    master_db_config = getattr(settings, "MASTER_DB_CONFIG")
    tenant_db_defaults = getattr(settings, "TENANT_DB_DEFAULTS", master_db_config)
    logger.info(
        "settings=%s master=%s@%s:%s/%s",
        settings_module,
        master_db_config.get("user"),
        master_db_config.get("host"),
        master_db_config.get("port", 3306),
        master_db_config.get("database"),
    )

    if container is None:
        container = build_container(
            master_db_config=master_db_config,
            tenant_db_defaults=tenant_db_defaults,
            erp_config=getattr(settings, "ERP_CONFIG", {}),
            jobs_config=getattr(settings, "JOBS_CONFIG", {}),
        )
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            init_databases(
                container,
                master=DBConfig.from_mapping(master_db_config),
                tenant_template=DBConfig.from_mapping(tenant_db_defaults),
            )

    app.extensions["shift_workflow"] = container

    register_error_handlers(app)
    register_ingestion(app, container)
    register_authorizations(app, container)
    register_exchanges(app, container)
    register_shifts(app, container)

    if bool(getattr(settings, "RUN_WORKER_IN_APP", False)):
        container.scheduler.start()

    return app
