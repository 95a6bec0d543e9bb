import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

# Shared store: companies, users, exchange requests and the job queue.
MASTER_DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("MASTER_DB_NAME", "shift_master"),
}

# Tenant databases share the server; the database name comes from the company row.
TENANT_DB_DEFAULTS = {
    "host": os.getenv("TENANT_DB_HOST", MASTER_DB_CONFIG["host"]),
    "port": int(os.getenv("TENANT_DB_PORT", str(MASTER_DB_CONFIG["port"]))),
    "user": os.getenv("TENANT_DB_USER", MASTER_DB_CONFIG["user"]),
    "password": os.getenv("TENANT_DB_PASSWORD", MASTER_DB_CONFIG["password"]),
    "database": "",
}

ERP_CONFIG = {
    "url": os.getenv("ODOO_URL", ""),
    "db": os.getenv("ODOO_DB", ""),
    "uid": int(os.getenv("ODOO_UID", "2")),
    "password": os.getenv("ODOO_PASSWORD", ""),
    "timeout_seconds": float(os.getenv("ODOO_TIMEOUT_SECONDS", "15")),
}

JOBS_CONFIG = {
    "early_checkin_queue_name": os.getenv("EARLY_CHECKIN_QUEUE_NAME", "early-checkin-auth"),
    "early_checkin_retry_limit": os.getenv("EARLY_CHECKIN_RETRY_LIMIT", "3"),
    "retry_delay_seconds": int(os.getenv("JOB_RETRY_DELAY_SECONDS", "30")),
    "poll_interval_seconds": float(os.getenv("JOB_POLL_INTERVAL_SECONDS", "1")),
    "batch_size": int(os.getenv("JOB_BATCH_SIZE", "1")),
    "expire_seconds": int(os.getenv("JOB_EXPIRE_SECONDS", "900")),
}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

RUN_WORKER_IN_APP = bool(int(os.getenv("RUN_WORKER_IN_APP", "0")))

DEBUG = False
