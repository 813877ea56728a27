"""Configuration validation utilities."""

from dataclasses import dataclass, fields
from typing import Any, Optional

from .defaults import BotConfig, get_default_config


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


# Timeouts, delays and distances that must be strictly positive
_POSITIVE_FIELDS = {
    "device": ("proximity", "poll_interval", "open_timeout", "place_timeout", "close_timeout"),
    "storage": ("proximity", "poll_interval", "open_timeout", "transfer_timeout"),
    "stuck": ("minimum_movement_distance",),
    "breaker": ("reset_timeout_seconds",),
    "instance": ("max_instance_seconds", "portal_proximity", "enter_timeout"),
    "exit": ("portal_search_radius", "portal_spawn_timeout", "transition_timeout"),
    "loot": ("max_range", "pickup_range", "pickup_timeout"),
    "prices": ("ttl_seconds", "request_timeout"),
    "session": ("tick_interval", "max_task_seconds"),
}

_PERCENT_FIELDS = {
    "instance": ("target_exploration_percent",),
    "exit": ("min_health_percent",),
}

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate a merged configuration dictionary."""
        errors: list[ValidationError] = []
        defaults = get_default_config()
        known_sections = {section.name for section in fields(BotConfig)}

        for section_name, values in config.items():
            if section_name not in known_sections:
                errors.append(ValidationError(
                    field=section_name,
                    message="Unknown configuration section",
                    value=values
                ))
                continue

            if not isinstance(values, dict):
                errors.append(ValidationError(
                    field=section_name,
                    message="Section must be a mapping",
                    value=values
                ))
                continue

            errors.extend(ConfigValidator._validate_section(
                section_name, values, getattr(defaults, section_name)
            ))

        errors.extend(ConfigValidator._validate_cross_fields(config))
        return errors

    @staticmethod
    def _validate_section(name: str, values: dict[str, Any], default_params: Any) -> list[ValidationError]:
        errors = []
        known = {f.name: getattr(default_params, f.name) for f in fields(default_params)}

        for key, value in values.items():
            path = f"{name}.{key}"
            if key not in known:
                errors.append(ValidationError(field=path, message="Unknown setting", value=value))
                continue

            error = ConfigValidator._check_type(path, value, known[key])
            if error:
                errors.append(error)
                continue

            if key in _POSITIVE_FIELDS.get(name, ()) and value <= 0:
                errors.append(ValidationError(
                    field=path,
                    message="Must be a positive number",
                    value=value
                ))

            if key in _PERCENT_FIELDS.get(name, ()) and not 0 <= value <= 100:
                errors.append(ValidationError(
                    field=path,
                    message="Must be a percentage between 0 and 100",
                    value=value
                ))

        return errors

    @staticmethod
    def _check_type(path: str, value: Any, default: Any) -> Optional[ValidationError]:
        """Check a value against the type of its default."""
        if isinstance(default, bool):
            if not isinstance(value, bool):
                return ValidationError(field=path, message="Must be a boolean", value=value)
        elif isinstance(default, int):
            if not isinstance(value, int) or isinstance(value, bool):
                return ValidationError(field=path, message="Must be an integer", value=value)
        elif isinstance(default, float):
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                return ValidationError(field=path, message="Must be a number", value=value)
        elif isinstance(default, str):
            if not isinstance(value, str):
                return ValidationError(field=path, message="Must be a string", value=value)
        elif isinstance(default, tuple):
            if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
                return ValidationError(field=path, message="Must be a list of strings", value=value)
        return None

    @staticmethod
    def _validate_cross_fields(config: dict[str, Any]) -> list[ValidationError]:
        errors = []

        instance = config.get("instance")
        if isinstance(instance, dict):
            min_tier = instance.get("min_tier", 1)
            max_tier = instance.get("max_tier", 16)
            if isinstance(min_tier, int) and isinstance(max_tier, int) and min_tier > max_tier:
                errors.append(ValidationError(
                    field="instance.min_tier",
                    message="Must not exceed instance.max_tier",
                    value=min_tier
                ))

        breaker = config.get("breaker")
        if isinstance(breaker, dict):
            max_consecutive = breaker.get("max_consecutive", 10)
            if isinstance(max_consecutive, int) and max_consecutive < 1:
                errors.append(ValidationError(
                    field="breaker.max_consecutive",
                    message="Must be at least 1",
                    value=max_consecutive
                ))

        stuck = config.get("stuck")
        if isinstance(stuck, dict):
            threshold = stuck.get("threshold", 10)
            if isinstance(threshold, int) and threshold < 1:
                errors.append(ValidationError(
                    field="stuck.threshold",
                    message="Must be at least 1",
                    value=threshold
                ))

        session = config.get("session")
        if isinstance(session, dict):
            max_instances = session.get("max_instances", 0)
            if isinstance(max_instances, int) and max_instances < 0:
                errors.append(ValidationError(
                    field="session.max_instances",
                    message="Must be zero (unlimited) or positive",
                    value=max_instances
                ))

        log_settings = config.get("logging")
        if isinstance(log_settings, dict):
            level = log_settings.get("level", "INFO")
            if isinstance(level, str) and level.upper() not in _LOG_LEVELS:
                errors.append(ValidationError(
                    field="logging.level",
                    message="Must be one of " + ", ".join(_LOG_LEVELS),
                    value=level
                ))

        return errors
