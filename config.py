import os
import sys

from dotenv import load_dotenv

from enums.runtime_environment import RuntimeEnvironment

# Load .env but don't override existing environment variables
# This allows test scripts to set RUNTIME_ENVIRONMENT=TEST before import
load_dotenv(".env", override=False)

# Parse RUNTIME_ENVIRONMENT with clear error message on misconfiguration
try:
    _runtime_env_str = os.environ.get("RUNTIME_ENVIRONMENT")
    if not _runtime_env_str:
        raise ValueError("RUNTIME_ENVIRONMENT environment variable is not set")
    RUNTIME_ENVIRONMENT = RuntimeEnvironment(_runtime_env_str)
except ValueError as e:
    valid_values = [env.value for env in RuntimeEnvironment]
    print(f"\n ERROR: Invalid RUNTIME_ENVIRONMENT configuration\n", file=sys.stderr)
    print(f"Reason: {e}", file=sys.stderr)
    print(f"Valid values: {', '.join(valid_values)}", file=sys.stderr)
    print(f"Current value: {os.environ.get('RUNTIME_ENVIRONMENT', '(not set)')}", file=sys.stderr)
    print(f"\nAdd to .env: RUNTIME_ENVIRONMENT={valid_values[0]}\n", file=sys.stderr)
    sys.exit(1)

WEBAPP_HOST = os.environ.get("WEBAPP_HOST", "0.0.0.0")
WEBAPP_PORT = int(os.environ.get("WEBAPP_PORT")) if os.environ.get("WEBAPP_PORT") else 8000

# Database
# Any SQLAlchemy async URL works (sqlite+aiosqlite, postgresql+asyncpg, ...)
DB_URL = os.environ.get("DB_URL", "sqlite+aiosqlite:///data/shop.db")
DB_ECHO = os.environ.get("DB_ECHO", "false") == "true"

# Authentication
# Tokens are issued by the external auth service; we only verify them.
JWT_SECRET = os.environ.get("JWT_SECRET")
if not JWT_SECRET:
    print(f"\n ERROR: Invalid JWT_SECRET configuration\n", file=sys.stderr)
    print(f"Reason: JWT_SECRET environment variable is not set", file=sys.stderr)
    print(f"Generate a secure secret with: openssl rand -hex 32", file=sys.stderr)
    print(f"\nAdd to .env: JWT_SECRET=<your-generated-secret>\n", file=sys.stderr)
    sys.exit(1)
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
JWT_AUDIENCE = os.environ.get("JWT_AUDIENCE") or None

# Guest carts are identified by this header only (body/Authorization variants are not accepted)
GUEST_TOKEN_HEADER = os.environ.get("GUEST_TOKEN_HEADER", "X-Guest-Token")

# Pagination
PAGE_DEFAULT_LIMIT = int(os.environ.get("PAGE_DEFAULT_LIMIT", "10"))
PAGE_MAX_LIMIT = int(os.environ.get("PAGE_MAX_LIMIT", "100"))

# Product image storage
IMAGE_STORAGE_DIR = os.environ.get("IMAGE_STORAGE_DIR", "./data/images")
IMAGE_PUBLIC_BASE_URL = os.environ.get("IMAGE_PUBLIC_BASE_URL", "http://localhost:8000/static")
IMAGE_MAX_BYTES = int(os.environ.get("IMAGE_MAX_BYTES", str(5 * 1024 * 1024)))  # 5 MB

# Logging Configuration
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")  # DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_MASK_SECRETS = os.environ.get("LOG_MASK_SECRETS", "true") == "true"  # Mask sensitive data in logs
LOG_DIR = os.environ.get("LOG_DIR", "logs")

# Log Retention: Environment-specific defaults
# Dev: keep a month for debugging
# Prod: Use 5 days default to save disk space
if RUNTIME_ENVIRONMENT == RuntimeEnvironment.DEV:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "30"))
else:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "5"))

# CORS allowed origins (comma separated, empty = CORS middleware disabled)
CORS_ALLOWED_ORIGINS = os.environ.get("CORS_ALLOWED_ORIGINS", "").split(",") if os.environ.get("CORS_ALLOWED_ORIGINS") else []
