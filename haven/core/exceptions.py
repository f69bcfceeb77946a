"""
Custom exceptions for the Haven daily brief engine.
"""

from typing import Any, Dict, Optional


class HavenException(Exception):
    """Base exception for the Haven system."""

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationException(HavenException):
    """Raised when configuration is invalid."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details=details,
        )


class DataSourceException(HavenException):
    """Raised when a critical read against the data source fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="DATA_SOURCE_ERROR",
            details=details,
        )


class BriefGenerationException(HavenException):
    """Raised when a daily brief snapshot could not be produced."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="BRIEF_GENERATION_ERROR",
            details=details,
        )
