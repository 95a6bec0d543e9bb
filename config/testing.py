import os

from config.base import *  # noqa: F401,F403

SECRET_KEY = "test-secret"

MASTER_DB_CONFIG = dict(MASTER_DB_CONFIG, database=os.getenv("MASTER_DB_NAME", "shift_master_test"))  # noqa: F405

DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
RUN_WORKER_IN_APP = False
