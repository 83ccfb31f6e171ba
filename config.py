import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./auth.db")
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")

    # Access tokens
    JWT_SECRET = data.get("JWT_SECRET", "dev-secret-key-change-in-production")
    JWT_EXPIRES_MINUTES = int(data.get("JWT_EXPIRES_MINUTES", 60 * 24 * 7))

    # Password hashing (Argon2id preferred, bcrypt legacy)
    ARGON2_TIME_COST = int(data.get("ARGON2_TIME_COST", 3))
    ARGON2_MEMORY_COST = int(data.get("ARGON2_MEMORY_COST", 65536))  # KiB
    ARGON2_PARALLELISM = int(data.get("ARGON2_PARALLELISM", 4))
    ARGON2_HASH_LENGTH = int(data.get("ARGON2_HASH_LENGTH", 32))
    ARGON2_SALT_LENGTH = int(data.get("ARGON2_SALT_LENGTH", 16))

    # Password reset tokens
    RESET_TOKEN_TTL_MINUTES = int(data.get("RESET_TOKEN_TTL_MINUTES", 15))
    RESET_URL_TEMPLATE = data.get(
        "RESET_URL_TEMPLATE", "http://localhost:3000/reset-password?token={token}"
    )
    TOKEN_PURGE_INTERVAL_SECONDS = int(data.get("TOKEN_PURGE_INTERVAL_SECONDS", 3600))

    # Rate limiting
    RATE_LIMIT_BACKEND = data.get("RATE_LIMIT_BACKEND", "memory")  # "redis" | "memory"
    REDIS_URL = data.get("REDIS_URL", "redis://localhost:6379/0")
    REDIS_TIMEOUT_SECONDS = float(data.get("REDIS_TIMEOUT_SECONDS", 0.5))
    RATE_LIMIT_WINDOW_MINUTES = int(data.get("RATE_LIMIT_WINDOW_MINUTES", 15))
    RESET_MAX_ATTEMPTS_PER_IP = int(data.get("RESET_MAX_ATTEMPTS_PER_IP", 5))
    RESET_MAX_ATTEMPTS_PER_EMAIL = int(data.get("RESET_MAX_ATTEMPTS_PER_EMAIL", 3))
    LOGIN_MAX_ATTEMPTS_PER_IP = int(data.get("LOGIN_MAX_ATTEMPTS_PER_IP", 20))
    LOGIN_MAX_ATTEMPTS_PER_IDENTITY = int(data.get("LOGIN_MAX_ATTEMPTS_PER_IDENTITY", 10))
    BACKOFF_BASE_SECONDS = float(data.get("BACKOFF_BASE_SECONDS", 1.0))
    BACKOFF_MAX_SECONDS = float(data.get("BACKOFF_MAX_SECONDS", 30.0))
    BACKOFF_RESET_SECONDS = int(data.get("BACKOFF_RESET_SECONDS", 3600))
    ENUMERATION_DELAY_MIN_MS = int(data.get("ENUMERATION_DELAY_MIN_MS", 50))
    ENUMERATION_DELAY_MAX_MS = int(data.get("ENUMERATION_DELAY_MAX_MS", 150))

    # Password policy
    PASSWORD_MIN_LENGTH = int(data.get("PASSWORD_MIN_LENGTH", 10))
    PASSWORD_MAX_LENGTH = int(data.get("PASSWORD_MAX_LENGTH", 128))
    PASSWORD_MIN_SCORE = int(data.get("PASSWORD_MIN_SCORE", 2))
    PASSWORD_BLOCKLIST = data.get("PASSWORD_BLOCKLIST", [])
    PASSWORD_BLOCKED_TERMS = data.get(
        "PASSWORD_BLOCKED_TERMS", ["promiserealty", "promise", "realty"]
    )

    # Sessions
    CLEAR_SESSIONS_ON_PASSWORD_CHANGE = bool(
        data.get("CLEAR_SESSIONS_ON_PASSWORD_CHANGE", True)
    )

    # Notifications
    NOTIFY_BACKEND = data.get("NOTIFY_BACKEND", "log")  # "log" | "smtp"
    NOTIFY_MAX_ATTEMPTS = int(data.get("NOTIFY_MAX_ATTEMPTS", 3))
    NOTIFY_RETRY_BASE_SECONDS = float(data.get("NOTIFY_RETRY_BASE_SECONDS", 2.0))
    NOTIFY_QUEUE_SIZE = int(data.get("NOTIFY_QUEUE_SIZE", 1000))
    SMTP_HOST = data.get("SMTP_HOST", "localhost")
    SMTP_PORT = int(data.get("SMTP_PORT", 587))
    SMTP_USERNAME = data.get("SMTP_USERNAME")
    SMTP_PASSWORD = data.get("SMTP_PASSWORD")
    SMTP_USE_TLS = bool(data.get("SMTP_USE_TLS", False))
    SMTP_START_TLS = bool(data.get("SMTP_START_TLS", True))
    SMTP_TIMEOUT_SECONDS = float(data.get("SMTP_TIMEOUT_SECONDS", 10))
    MAIL_FROM = data.get("MAIL_FROM", "no-reply@promiserealty.com")
