from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, replace
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel

from src.pupfinance.runtime.config.config_data import ConfigData
from src.pupfinance.runtime.config.config_template import load_templated_yaml
from src.pupfinance.runtime.settings import get_environment_variables


@dataclass
class AppContext:
    """Application context containing configuration and other app-wide state."""

    config: ConfigData


def _load_default_context() -> AppContext:
    # Make .env values visible to config.yaml substitution; real env vars win
    load_dotenv()
    env = get_environment_variables()
    config_path = Path(env.config_file)
    if not config_path.exists():
        logger.warning(
            "Configuration file {} not found; using built-in defaults", config_path
        )
        config = ConfigData()
    else:
        config = load_templated_yaml(config_path, env_mode=env.environment)
    if env.log_level:
        config.logging.level = env.log_level
    return AppContext(config=config)


# Process-wide context, loaded on first use. Worker threads (and the event loop
# thread of a test client) do not inherit context variables, so the fallback
# must live at module level.
_default_context: AppContext | None = None

# Context variable for scoped overrides
_app_context: ContextVar[AppContext | None] = ContextVar("app_context", default=None)


def _get_default_context() -> AppContext:
    global _default_context
    if _default_context is None:
        _default_context = _load_default_context()
    return _default_context


def get_context() -> AppContext:
    """Get the current application context.

    Returns:
        AppContext: The current application context containing configuration.
    """
    context = _app_context.get()
    if context is None:
        return _get_default_context()
    return context


def set_context(context: AppContext) -> Token[AppContext | None]:
    """Set the application context for the current execution context only.

    Args:
        context: AppContext instance to set as current.
    """
    return _app_context.set(context)


def _recursive_model_dump_exclude_unset(model: BaseModel) -> dict:
    """Recursively dump a Pydantic model keeping only explicitly set fields.

    A nested model is included when it, or anything below it, was set.
    """
    result = {}
    explicitly_set_fields = model.model_fields_set

    for field_name in model.__class__.model_fields:
        field_value = getattr(model, field_name)

        if isinstance(field_value, BaseModel):
            nested_result = _recursive_model_dump_exclude_unset(field_value)
            if nested_result:
                result[field_name] = nested_result
            elif field_name in explicitly_set_fields:
                result[field_name] = field_value.model_dump()
        elif field_name in explicitly_set_fields:
            result[field_name] = field_value

    return result


def _recursive_dict_merge(base_dict: dict, override_dict: dict) -> dict:
    """Recursively merge two dictionaries from deepest levels up.

    Args:
        base_dict: The base dictionary to merge into
        override_dict: The override dictionary to merge from

    Returns:
        dict: The merged dictionary
    """
    result = base_dict.copy()

    for key, value in override_dict.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _recursive_dict_merge(result[key], value)
        else:
            result[key] = value

    return result


def _merge_configs(base_config: ConfigData, override_config: ConfigData) -> ConfigData:
    """Merge the explicitly set fields of ``override_config`` into ``base_config``."""
    base_dict = base_config.model_dump()
    override_dict = _recursive_model_dump_exclude_unset(override_config)
    merged_dict = _recursive_dict_merge(base_dict, override_dict)
    return ConfigData.model_validate(merged_dict)


@contextmanager
def with_context(config_override: ConfigData | None = None):
    """Context manager for temporarily overriding the application context.

    Only explicitly set fields of the override are applied; everything else is
    inherited from the current context.

    Example:
        override = ConfigData(service=ServiceConfig(sync_secret="s3cret"))
        with with_context(override):
            assert get_config().service.sync_secret == "s3cret"
            # auth, database, logging... inherited
    """
    if config_override is None:
        yield
        return

    if not isinstance(config_override, ConfigData):
        raise ValueError(
            f"config_override must be ConfigData, or None, got {type(config_override)}"
        )

    merged_config = _merge_configs(get_context().config, config_override)
    token = set_context(replace(get_context(), config=merged_config))
    try:
        yield
    finally:
        _app_context.reset(token)


def set_config(config: ConfigData) -> None:
    """Replace the process-wide configuration.

    Args:
        config: ConfigData instance to set as current.
    """
    global _default_context
    if _default_context is None:
        _default_context = AppContext(config=config)
    else:
        _default_context = replace(_default_context, config=config)


def reset_config() -> None:
    """Forget the process-wide configuration so it is reloaded on next use."""
    global _default_context
    _default_context = None


def get_config() -> ConfigData:
    """Convenience function to get the current configuration.

    Returns:
        ConfigData: The current configuration from the app context.
    """
    return get_context().config
