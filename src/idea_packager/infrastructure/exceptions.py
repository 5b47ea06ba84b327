"""
Structured Exception Hierarchy

Every error raised by the packager carries an error code, a context
dictionary and a correlation id so that failures of a packaging run can be
traced back through the structured logs.
"""

from typing import Dict, List, Any, Optional
import uuid
from datetime import datetime, timezone


class PackagerException(Exception):
    """
    Base exception class for all packager-specific exceptions.

    Provides structured error information including error codes,
    context data, and correlation IDs for tracing.
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        correlation_id: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "correlation_id": self.correlation_id,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None
        }


class ConfigurationError(PackagerException):
    """Raised when configuration-related errors occur."""

    def __init__(
        self,
        message: str,
        config_path: Optional[str] = None,
        validation_errors: Optional[List[Any]] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if config_path:
            context['config_path'] = config_path
        if validation_errors:
            context['validation_errors'] = validation_errors

        super().__init__(
            message=message,
            error_code=kwargs.pop('error_code', "CONFIG_ERROR"),
            context=context,
            **kwargs
        )


class PluginDescriptorError(PackagerException):
    """Raised when a plugin descriptor cannot be located or parsed."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if source:
            context['source'] = source

        super().__init__(
            message=message,
            error_code="PLUGIN_DESCRIPTOR_ERROR",
            context=context,
            **kwargs
        )


class PluginIndexError(PackagerException):
    """Raised when the on-disk plugin index is unusable."""

    def __init__(
        self,
        message: str,
        index_file: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if index_file:
            context['index_file'] = index_file

        super().__init__(
            message=message,
            error_code=kwargs.pop('error_code', "PLUGIN_INDEX_ERROR"),
            context=context,
            **kwargs
        )


class WrongIndexVersionError(PluginIndexError):
    """Raised when the index file was written with a different format version."""

    def __init__(self, file_version: int, current_version: int, **kwargs):
        context = kwargs.pop('context', {})
        context['file_version'] = file_version
        context['current_version'] = current_version
        self.file_version = file_version

        super().__init__(
            message=(
                f"Index version in file {file_version} is different "
                f"from current {current_version}"
            ),
            error_code="WRONG_INDEX_VERSION",
            context=context,
            **kwargs
        )


class MappingError(PackagerException):
    """Raised when the packaging structure cannot be turned into mappings."""

    def __init__(
        self,
        message: str,
        project: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if project:
            context['project'] = project

        super().__init__(
            message=message,
            error_code="MAPPING_ERROR",
            context=context,
            **kwargs
        )


class ArtifactBuildError(PackagerException):
    """Raised when materializing mappings leaves the artifact incomplete."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        destination: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if source:
            context['source'] = source
        if destination:
            context['destination'] = destination

        super().__init__(
            message=message,
            error_code="ARTIFACT_BUILD_ERROR",
            context=context,
            **kwargs
        )
