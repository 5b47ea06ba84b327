"""
Configuration validation utilities.
"""

from typing import Dict, Any, List
from pydantic import ValidationError

from ...infrastructure.exceptions import ConfigurationError
from .models import PackagerConfiguration


class ConfigurationValidationError(ConfigurationError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, validation_errors: List[Dict[str, Any]]):
        super().__init__(
            message,
            validation_errors=validation_errors,
            error_code="CONFIGURATION_VALIDATION_ERROR"
        )
        self.validation_errors = validation_errors

    def get_detailed_message(self) -> str:
        """Get a detailed error message with all validation errors."""
        lines = [self.message]
        lines.append("Validation errors:")

        for error in self.validation_errors:
            location = " -> ".join(str(loc) for loc in error.get('loc', []))
            msg = error.get('msg', 'Unknown error')
            lines.append(f"- {location}: {msg}")

        return "\n".join(lines)


class ConfigurationValidator:
    """Validates configuration data and provides detailed error messages."""

    KNOWN_SECTIONS = frozenset(PackagerConfiguration.model_fields)

    @staticmethod
    def validate_configuration(config_data: Dict[str, Any]) -> List[str]:
        """
        Validate configuration data and return list of warnings.

        Args:
            config_data: Raw merged configuration data

        Returns:
            List of warning messages for unknown sections

        Raises:
            ConfigurationValidationError: If validation fails with errors
        """
        warnings = []
        known = {k: v for k, v in config_data.items() if k in ConfigurationValidator.KNOWN_SECTIONS}

        for key in config_data:
            if key not in ConfigurationValidator.KNOWN_SECTIONS:
                warnings.append(f"Unknown configuration key: {key}")

        try:
            PackagerConfiguration(**known)
        except ValidationError as e:
            errors = [
                {'loc': list(error['loc']), 'msg': error['msg'], 'type': error['type']}
                for error in e.errors()
            ]
            raise ConfigurationValidationError("Configuration validation failed", errors) from e

        return warnings
