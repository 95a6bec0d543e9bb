from __future__ import annotations

import sys
from pathlib import Path

import importlib

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.shift_workflow.shift_workflow.database.bootstrap import (
    apply_master_schema,
    apply_tenant_schema,
    list_tables,
)
from src.shift_workflow.shift_workflow.database.connection import DBConfig


def main(argv: list[str] | None = None) -> None:
    """Apply the master schema, then the tenant schema to each database named on the command line."""
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    master = DBConfig.from_mapping(settings.MASTER_DB_CONFIG)
    tenant_template = DBConfig.from_mapping(getattr(settings, "TENANT_DB_DEFAULTS", settings.MASTER_DB_CONFIG))

    apply_master_schema(master)
    print(f"OK: master schema -> {master.user}@{master.host}:{master.port}/{master.database} (tables={len(list_tables(master))})")

    for name in argv if argv is not None else sys.argv[1:]:
        tenant = tenant_template.for_database(name)
        apply_tenant_schema(tenant)
        print(f"OK: tenant schema -> {tenant.database} (tables={len(list_tables(tenant))})")


if __name__ == "__main__":
    main()
