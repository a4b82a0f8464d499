"""Configuration validation utilities."""

from dataclasses import dataclass, fields
from typing import Any

from .defaults import (
    EntitlementParams,
    LoggingParams,
    LookupParams,
    ProductParams,
    StorageParams,
    SyncParams,
)

_SECTIONS = {
    "sync": SyncParams,
    "lookup": LookupParams,
    "entitlement": EntitlementParams,
    "storage": StorageParams,
    "logging": LoggingParams,
}

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate a merged configuration dictionary."""
        errors = []

        for section, value in config.items():
            if section not in _SECTIONS:
                errors.append(ValidationError(
                    field=section,
                    message="Unknown configuration section",
                    value=value
                ))
                continue
            if not isinstance(value, dict):
                errors.append(ValidationError(
                    field=section,
                    message="Must be a mapping",
                    value=value
                ))
                continue

            known = {f.name for f in fields(_SECTIONS[section])}
            for key in value:
                if key not in known:
                    errors.append(ValidationError(
                        field=f"{section}.{key}",
                        message="Unknown configuration key",
                        value=value[key]
                    ))

        errors.extend(ConfigValidator.validate_sync_params(config.get("sync", {})))
        errors.extend(ConfigValidator.validate_lookup_params(config.get("lookup", {})))
        errors.extend(ConfigValidator.validate_entitlement_params(config.get("entitlement", {})))
        errors.extend(ConfigValidator.validate_logging_params(config.get("logging", {})))

        return errors

    @staticmethod
    def validate_sync_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate watchlist refresh parameters."""
        errors = []
        if not isinstance(params, dict):
            return errors

        # Validate max_concurrency
        if "max_concurrency" in params:
            value = params["max_concurrency"]
            if not isinstance(value, int) or isinstance(value, bool) or not 1 <= value <= 64:
                errors.append(ValidationError(
                    field="sync.max_concurrency",
                    message="Must be an integer between 1 and 64",
                    value=value
                ))

        # Validate lookup_timeout_seconds
        if "lookup_timeout_seconds" in params:
            value = params["lookup_timeout_seconds"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="sync.lookup_timeout_seconds",
                    message="Must be a positive number",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_lookup_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate flight data service parameters."""
        errors = []
        if not isinstance(params, dict):
            return errors

        if "base_url" in params:
            value = params["base_url"]
            if not isinstance(value, str) or not value.startswith(("http://", "https://")):
                errors.append(ValidationError(
                    field="lookup.base_url",
                    message="Must be an http(s) URL",
                    value=value
                ))

        if "timeout_seconds" in params:
            value = params["timeout_seconds"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="lookup.timeout_seconds",
                    message="Must be a positive number",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_entitlement_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate subscription gating parameters."""
        errors = []
        if not isinstance(params, dict):
            return errors

        # Validate free_action_quota
        if "free_action_quota" in params:
            value = params["free_action_quota"]
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                errors.append(ValidationError(
                    field="entitlement.free_action_quota",
                    message="Must be a non-negative integer",
                    value=value
                ))

        # Validate require_entitlement_to_track
        if "require_entitlement_to_track" in params:
            value = params["require_entitlement_to_track"]
            if not isinstance(value, bool):
                errors.append(ValidationError(
                    field="entitlement.require_entitlement_to_track",
                    message="Must be a boolean",
                    value=value
                ))

        # Validate listener_retry_seconds
        if "listener_retry_seconds" in params:
            value = params["listener_retry_seconds"]
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
                errors.append(ValidationError(
                    field="entitlement.listener_retry_seconds",
                    message="Must be a non-negative number",
                    value=value
                ))

        # Validate products
        if "products" in params:
            value = params["products"]
            if not isinstance(value, (list, tuple)) or not value:
                errors.append(ValidationError(
                    field="entitlement.products",
                    message="Must be a non-empty list of products",
                    value=value
                ))
            else:
                allowed = {f.name for f in fields(ProductParams)}
                seen = set()
                for i, product in enumerate(value):
                    if isinstance(product, ProductParams):
                        product_id = product.id
                    elif (isinstance(product, dict) and isinstance(product.get("id"), str)
                          and isinstance(product.get("display_name"), str)
                          and set(product) <= allowed):
                        product_id = product["id"]
                    else:
                        errors.append(ValidationError(
                            field=f"entitlement.products[{i}]",
                            message="Must have string 'id' and 'display_name' and no other keys "
                                    "than 'has_intro_trial'",
                            value=product
                        ))
                        continue
                    if product_id in seen:
                        errors.append(ValidationError(
                            field=f"entitlement.products[{i}].id",
                            message="Duplicate product id",
                            value=product_id
                        ))
                    seen.add(product_id)

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate logging parameters."""
        errors = []
        if not isinstance(params, dict):
            return errors

        if "level" in params:
            value = params["level"]
            if not isinstance(value, str) or value.upper() not in _LOG_LEVELS:
                errors.append(ValidationError(
                    field="logging.level",
                    message=f"Must be one of {', '.join(_LOG_LEVELS)}",
                    value=value
                ))

        if "format_json" in params and not isinstance(params["format_json"], bool):
            errors.append(ValidationError(
                field="logging.format_json",
                message="Must be a boolean",
                value=params["format_json"]
            ))

        return errors
