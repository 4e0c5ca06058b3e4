from .base import *  # noqa: F401,F403

SECRET_KEY = "test-secret"

DEBUG = False
TESTING = True
LOG_JSON = False

ADMIN_REPORT_EMAILS = ["ops@example.com"]
