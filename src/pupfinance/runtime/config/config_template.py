"""Configuration template substitution utilities."""

import os
import re
from pathlib import Path

import yaml
from loguru import logger
from pydantic_core import ValidationError

from src.pupfinance.runtime.config.config_data import ConfigData


def substitute_env_vars(text: str) -> str:
    """
    Substitute environment variable placeholders in text.

    Supports formats:
    - ${VAR_NAME} - required variable (raises error if missing)
    - ${VAR_NAME:-default} - optional with default value
    - ${VAR_NAME:?error_message} - required with custom error message
    """

    def replacer(match):
        var_expr = match.group(1)

        # Handle default values: ${VAR:-default}
        if ":-" in var_expr:
            var_name, default = var_expr.split(":-", 1)
            return os.getenv(var_name, default)

        # Handle error messages: ${VAR:?message}
        elif ":?" in var_expr:
            var_name, error_msg = var_expr.split(":?", 1)
            value = os.getenv(var_name)
            if value is None:
                raise ValueError(
                    f"Required environment variable {var_name}: {error_msg}"
                )
            return value

        # Handle required variables: ${VAR}
        else:
            var_name = var_expr
            value = os.getenv(var_name)
            if value is None:
                raise ValueError(f"Required environment variable {var_name} not set")
            return value

    # Match ${...} patterns
    pattern = r"\$\{([^}]+)\}"
    return re.sub(pattern, replacer, text)


def _none_if_blank(section: dict, *keys: str) -> None:
    for key in keys:
        if section.get(key) == "":
            section[key] = None


def load_templated_yaml(file_path: Path, env_mode: str | None = None) -> ConfigData:
    """
    Load a YAML file with environment variable substitution.

    Args:
        file_path: Path to the YAML file
        env_mode: Environment name; variables prefixed with ``<ENV_MODE>_``
            override their unprefixed counterparts

    Returns:
        Parsed YAML with environment variables substituted

    Raises:
        ValueError: If required environment variables are missing
        FileNotFoundError: If the YAML file doesn't exist
    """
    with open(file_path) as f:
        content = f.read()

    env_mode = env_mode or os.getenv("APP_ENVIRONMENT", "development")
    logger.info("Loading configuration for environment: {}", env_mode)

    # PRODUCTION_AUTH0_DOMAIN overrides AUTH0_DOMAIN when running in production
    prefix = f"{env_mode.upper()}_"
    env_overrides = {
        var[len(prefix) :]: value
        for var, value in os.environ.items()
        if var.startswith(prefix)
    }
    if env_overrides:
        logger.info(
            "Applying environment-specific overrides: {}", sorted(env_overrides)
        )
    for var_name, var_value in env_overrides.items():
        os.environ[var_name] = var_value

    substituted_content = substitute_env_vars(content)

    try:
        loaded = yaml.safe_load(substituted_content)
        if not loaded:
            raise ValueError("Failed to parse YAML")
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}") from e

    config_data = loaded.get("config", {}) or {}

    # Empty substitutions (``${AUTH0_DOMAIN:-}``) mean "not configured"
    for section in ("auth", "service", "audit"):
        if not isinstance(config_data.get(section), dict):
            config_data[section] = {}
    _none_if_blank(
        config_data["auth"],
        "domain",
        "audience",
        "permissions_claim",
    )
    _none_if_blank(config_data["service"], "sync_secret")
    _none_if_blank(config_data["audit"], "persist")

    try:
        config = ConfigData(**config_data)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    missing = config.missing_required_settings()
    if missing:
        logger.warning("Configuration is missing required settings: {}", missing)

    return config
