import os

from .base import *  # noqa: F401,F403

DEBUG = True
LOG_JSON = False

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
