"""
Base classes with minimal dependencies.

Exceptions, argument validation and the ellipse/affine geometry that the
shapelet modules build upon.
"""

from .exceptions import (
    ShapeletError,
    ValidationError,
    LengthError,
    OrderMismatchError,
    ConfigurationError,
    GeometryError,
    validate_positive,
)
from .validation import (
    validate_order,
    validate_vector_size,
    as_coefficient_array,
)
from .ellipses import (
    LinearTransform,
    AffineTransform,
    EllipseCore,
    Ellipse,
)

__all__ = [
    # Exceptions
    "ShapeletError",
    "ValidationError",
    "LengthError",
    "OrderMismatchError",
    "ConfigurationError",
    "GeometryError",
    # Validation
    "validate_positive",
    "validate_order",
    "validate_vector_size",
    "as_coefficient_array",
    # Geometry
    "LinearTransform",
    "AffineTransform",
    "EllipseCore",
    "Ellipse",
]
