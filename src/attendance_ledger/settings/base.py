import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_ledger"),
}

ORG_TIMEZONE = os.getenv("ORG_TIMEZONE", "Asia/Karachi")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_FROM = os.getenv("SMTP_FROM", "attendance@localhost")
SMTP_USE_TLS = bool(int(os.getenv("SMTP_USE_TLS", "1")))

# Comma separated recipients of the nightly summary and failure alerts.
ADMIN_REPORT_EMAILS = [e.strip() for e in os.getenv("ADMIN_REPORT_EMAILS", "").split(",") if e.strip()]

IP_LOOKUP_URL = os.getenv("IP_LOOKUP_URL", "http://ip-api.com/json/{ip}")
IP_LOOKUP_TIMEOUT = float(os.getenv("IP_LOOKUP_TIMEOUT", "5"))

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
