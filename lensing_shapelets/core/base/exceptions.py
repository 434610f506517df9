"""
Exception hierarchy for LensingShapelets.

This module defines all custom exceptions used throughout the package,
providing clear error messages and proper inheritance structure.
"""

from typing import Optional, Any, Dict, Union


class ShapeletError(Exception):
    """Base exception for all LensingShapelets errors.

    This is the root exception class that all other package exceptions
    inherit from. It provides enhanced error reporting with optional
    context information.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 cause: Optional[Exception] = None):
        """Initialize shapelet error.

        Parameters
        ----------
        message : str
            Primary error message
        details : dict, optional
            Additional context information
        cause : Exception, optional
            Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        """String representation of the error."""
        base_msg = self.message

        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            base_msg += f" (Details: {details_str})"

        if self.cause:
            base_msg += f" (Caused by: {self.cause})"

        return base_msg

    def add_detail(self, key: str, value: Any) -> "ShapeletError":
        """Add detail information to the error.

        Parameters
        ----------
        key : str
            Detail key
        value : Any
            Detail value

        Returns
        -------
        ShapeletError
            Self for method chaining
        """
        self.details[key] = value
        return self

    def get_detail(self, key: str, default: Any = None) -> Any:
        """Get detail information from the error."""
        return self.details.get(key, default)


class ValidationError(ShapeletError):
    """Raised when input validation fails.

    This exception is used when an argument doesn't meet the required
    criteria, e.g. a negative polynomial order.
    """

    def __init__(self, message: str, field: Optional[str] = None,
                 value: Optional[Any] = None, **kwargs):
        """Initialize validation error.

        Parameters
        ----------
        message : str
            Validation error message
        field : str, optional
            Name of the field that failed validation
        value : Any, optional
            Value that failed validation
        **kwargs
            Additional arguments for base class
        """
        details = kwargs.pop('details', {})
        if field is not None:
            details['field'] = field
        if value is not None:
            details['value'] = value

        super().__init__(message, details=details, **kwargs)
        self.field = field
        self.value = value


class LengthError(ValidationError):
    """Raised when an array does not have the size implied by a polynomial order."""

    def __init__(self, message: str, expected: Optional[int] = None,
                 actual: Optional[int] = None, **kwargs):
        details = kwargs.pop('details', {})
        if expected is not None:
            details['expected'] = expected
        if actual is not None:
            details['actual'] = actual

        super().__init__(message, details=details, **kwargs)
        self.expected = expected
        self.actual = actual


class OrderMismatchError(ValidationError):
    """Raised when an object bound to one polynomial order is given another."""

    def __init__(self, message: str, expected: Optional[int] = None,
                 actual: Optional[int] = None, **kwargs):
        details = kwargs.pop('details', {})
        if expected is not None:
            details['expected_order'] = expected
        if actual is not None:
            details['actual_order'] = actual

        super().__init__(message, details=details, **kwargs)
        self.expected = expected
        self.actual = actual


class ConfigurationError(ShapeletError):
    """Raised when configuration is invalid or missing.

    This exception is used for configuration-related errors such as
    missing required parameters, invalid values, or malformed config files.
    """

    def __init__(self, message: str, config_file: Optional[str] = None,
                 parameter: Optional[str] = None, **kwargs):
        """Initialize configuration error.

        Parameters
        ----------
        message : str
            Configuration error message
        config_file : str, optional
            Path to the configuration file with issues
        parameter : str, optional
            Name of the problematic parameter
        **kwargs
            Additional arguments for base class
        """
        details = kwargs.pop('details', {})
        if config_file is not None:
            details['config_file'] = config_file
        if parameter is not None:
            details['parameter'] = parameter

        super().__init__(message, details=details, **kwargs)
        self.config_file = config_file
        self.parameter = parameter


class GeometryError(ShapeletError):
    """Raised when geometric operations fail.

    This exception is used for degenerate ellipses, singular transforms,
    and other failures in the affine/ellipse algebra.
    """

    def __init__(self, message: str, operation: Optional[str] = None, **kwargs):
        """Initialize geometry error.

        Parameters
        ----------
        message : str
            Geometry error message
        operation : str, optional
            Geometric operation that failed
        **kwargs
            Additional arguments for base class
        """
        details = kwargs.pop('details', {})
        if operation is not None:
            details['operation'] = operation

        super().__init__(message, details=details, **kwargs)
        self.operation = operation


def validate_positive(value: Union[int, float], name: str) -> Union[int, float]:
    """Validate that a numeric value is positive.

    Raises
    ------
    ValidationError
        If value is not positive
    """
    if value <= 0:
        raise ValidationError(f"Parameter '{name}' must be positive, got {value}",
                            field=name, value=value)
    return value
