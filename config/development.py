import os

from config.base import *  # noqa: F401,F403

DEBUG = True

# If enabled, the app applies database/*.sql on startup (CREATE IF NOT EXISTS).
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
