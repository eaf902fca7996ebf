# client_icons/core/exceptions.py

"""
Custom exceptions for the application.

Provides specific exception types for different error scenarios,
making error handling more precise and informative.
"""


class AppException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert exception to dictionary for JSON responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


# Condition exceptions
class ConditionEvaluationError(AppException):
    """Base class for errors raised while compiling or evaluating a rule."""
    pass


class InvalidConditionError(ConditionEvaluationError):
    """Condition tree has an invalid shape."""
    pass


class UnknownFieldError(ConditionEvaluationError):
    """Condition references a field the client schema does not expose."""
    pass


class UnsupportedOperatorError(ConditionEvaluationError):
    """Comparison or logical operator is not supported."""
    pass


class ConditionTypeError(ConditionEvaluationError):
    """Rule value and client value cannot be compared."""
    pass


class ConditionDepthError(ConditionEvaluationError):
    """Condition tree is nested deeper than allowed."""
    pass


# Auto-assignment exceptions
class AutoAssignmentError(AppException):
    """Icon reconciliation failed and was rolled back."""
    pass


# Import exceptions
class RuleImportError(AppException):
    """Icon rules file could not be read."""
    pass


# Configuration exceptions
class ConfigurationError(AppException):
    """Base class for configuration errors."""
    pass


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""
    pass
