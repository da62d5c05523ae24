"""
Configuration Validation Module

Validates critical configuration values at startup to fail-fast
with clear error messages instead of runtime failures.
"""

import sys
from typing import Optional

from enums.runtime_environment import RuntimeEnvironment

SUPPORTED_JWT_ALGORITHMS = {"HS256", "HS384", "HS512"}


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


def validate_jwt_secret(secret: Optional[str], runtime_environment: RuntimeEnvironment) -> None:
    """
    Validate the secret used to verify bearer tokens.

    Short secrets are tolerated in TEST only.

    Raises:
        ConfigValidationError: If secret is missing or too weak
    """
    if not secret or len(secret.strip()) == 0:
        raise ConfigValidationError(
            "JWT_SECRET is required and must not be empty!\n"
            "It must match the secret of the service issuing the tokens.\n"
            "Add to .env: JWT_SECRET=<shared-secret>"
        )

    if runtime_environment != RuntimeEnvironment.TEST and len(secret) < 32:
        raise ConfigValidationError(
            f"JWT_SECRET is too weak (length: {len(secret)}, minimum: 32)!\n"
            "Generate a secure secret with: openssl rand -hex 32"
        )


def validate_jwt_algorithm(algorithm: Optional[str]) -> None:
    if algorithm not in SUPPORTED_JWT_ALGORITHMS:
        raise ConfigValidationError(
            f"JWT_ALGORITHM '{algorithm}' is not supported!\n"
            f"Supported values: {', '.join(sorted(SUPPORTED_JWT_ALGORITHMS))}"
        )


def validate_pagination(default_limit: int, max_limit: int) -> None:
    if max_limit < 1:
        raise ConfigValidationError(f"PAGE_MAX_LIMIT must be at least 1 (currently: {max_limit})")
    if not 1 <= default_limit <= max_limit:
        raise ConfigValidationError(
            f"PAGE_DEFAULT_LIMIT must be between 1 and PAGE_MAX_LIMIT ({max_limit}), currently: {default_limit}"
        )


def validate_required_config(value: Optional[str], name: str, example: str = "") -> None:
    """
    Validate that a required config value is set.

    Args:
        value: The config value to check
        name: Name of the config variable
        example: Optional example value to show in error message

    Raises:
        ConfigValidationError: If value is missing
    """
    if not value:
        error_msg = f"{name} is required but not set!"
        if example:
            error_msg += f"\nAdd to .env: {name}={example}"
        raise ConfigValidationError(error_msg)


def validate_startup_config(config_module) -> None:
    """
    Validate all critical configuration at startup.

    Args:
        config_module: The config module to validate

    Raises:
        ConfigValidationError: If any validation fails
    """
    validate_jwt_secret(config_module.JWT_SECRET, config_module.RUNTIME_ENVIRONMENT)
    validate_jwt_algorithm(config_module.JWT_ALGORITHM)
    validate_required_config(config_module.DB_URL, 'DB_URL', 'sqlite+aiosqlite:///data/shop.db')
    validate_pagination(config_module.PAGE_DEFAULT_LIMIT, config_module.PAGE_MAX_LIMIT)

    if config_module.IMAGE_MAX_BYTES <= 0:
        raise ConfigValidationError(f"IMAGE_MAX_BYTES must be positive (currently: {config_module.IMAGE_MAX_BYTES})")


def validate_or_exit(config_module) -> None:
    """
    Validate configuration and exit with error code 1 if validation fails.

    This is the main entry point for startup validation.

    Args:
        config_module: The config module to validate
    """
    try:
        validate_startup_config(config_module)
    except ConfigValidationError as e:
        print(f"\n ERROR: Configuration Validation Failed\n", file=sys.stderr)
        print(str(e), file=sys.stderr)
        print("\nServer startup aborted. Please fix configuration and try again.\n", file=sys.stderr)
        sys.exit(1)
