"""
Centralized Logging Configuration

Provides secure, production-ready logging with:
- Configurable log levels
- Automatic log rotation
- Secret masking to prevent credential leaks
- Structured output for forensic analysis
"""

import logging
import logging.handlers
import re
from pathlib import Path
from typing import Pattern

import config


class SecretMaskingFilter(logging.Filter):
    """
    Logging filter that masks sensitive data in log records.

    Prevents credential leaks by replacing sensitive values with [REDACTED].

    Masks:
    - Bearer tokens and raw JWTs
    - Guest cart tokens
    - Passwords and secrets
    - Email addresses and phone numbers
    - Shipping addresses
    """

    # Patterns for secret masking
    PATTERNS: list[tuple[Pattern, str]] = [
        # Bearer tokens (Authorization header) and bare JWTs
        (re.compile(r'(Bearer\s+)([A-Za-z0-9_\-\.]+)', re.IGNORECASE), r'\1[REDACTED_BEARER_TOKEN]'),
        (re.compile(r'\beyJ[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+'), '[REDACTED_JWT]'),

        # Guest tokens (header or field form)
        (re.compile(r'((?:x-)?guest[_-]?token["\']?\s*[:=]\s*["\']?)([A-Za-z0-9\-]{8,})(["\']?)', re.IGNORECASE),
         r'\1[REDACTED_GUEST_TOKEN]\3'),

        # Passwords and secrets
        (re.compile(r'(password["\']?\s*[:=]\s*["\']?)([^\s"\']+)(["\']?)', re.IGNORECASE), r'\1[REDACTED_PASSWORD]\3'),
        (re.compile(r'(secret["\']?\s*[:=]\s*["\']?)([^\s"\']{6,})(["\']?)', re.IGNORECASE), r'\1[REDACTED_SECRET]\3'),

        # Email addresses (PII)
        (re.compile(r'\b([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})\b'), '[REDACTED_EMAIL]'),

        # Phone numbers (field form first, then free-standing numbers)
        (re.compile(r'(phone(?:_number)?["\']?\s*[:=]\s*["\']?)([^"\',}]{5,})(["\']?)', re.IGNORECASE), r'\1[REDACTED_PHONE]\3'),
        (re.compile(r'\b(\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b'), '[REDACTED_PHONE]'),

        # Shipping addresses
        (re.compile(r'(address["\']?\s*[:=]\s*["\']?)([^"\']{10,})(["\']?)', re.IGNORECASE), r'\1[REDACTED_ADDRESS]\3'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Filter log record to mask sensitive data.

        Args:
            record: LogRecord to filter

        Returns:
            True (always - we modify but don't block records)
        """
        # Mask secrets in the message
        if record.msg:
            for pattern, replacement in self.PATTERNS:
                record.msg = pattern.sub(replacement, str(record.msg))

        # Mask secrets in arguments
        if record.args:
            masked_args = []
            for arg in record.args:
                if isinstance(arg, str):
                    for pattern, replacement in self.PATTERNS:
                        arg = pattern.sub(replacement, arg)
                masked_args.append(arg)
            record.args = tuple(masked_args)

        return True


def setup_logging():
    """
    Initialize centralized logging configuration.

    Call this function once at application startup (in run.py).

    Configuration:
    - Log level from config.LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)
    - Automatic rotation every midnight
    - Keeps logs for config.LOG_RETENTION_DAYS days
    - Masks secrets if config.LOG_MASK_SECRETS is True
    - Writes to <LOG_DIR>/shop.log
    """
    log_dir = Path(getattr(config, "LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)

    log_level_str = getattr(config, "LOG_LEVEL", "INFO")
    log_level = getattr(logging, log_level_str.upper(), logging.INFO)

    retention_days = getattr(config, "LOG_RETENTION_DAYS", 7)

    # Check if secret masking is enabled (default to True for security)
    mask_secrets = getattr(config, "LOG_MASK_SECRETS", True)

    formatter = logging.Formatter(
        fmt='%(asctime)s | %(name)-25s | %(levelname)-8s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    file_handler = logging.handlers.TimedRotatingFileHandler(
        filename=log_dir / "shop.log",
        when="midnight",
        interval=1,
        backupCount=retention_days,
        encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(log_level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    if mask_secrets:
        file_handler.addFilter(SecretMaskingFilter())
        console_handler.addFilter(SecretMaskingFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # SQL statement logging is controlled by DB_ECHO only
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    # uvicorn's access log duplicates the request-context middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logging.info("=" * 80)
    logging.info(f"Logging initialized: Level={log_level_str}, Retention={retention_days} days, Masking={'ENABLED' if mask_secrets else 'DISABLED'}")
    logging.info("=" * 80)
