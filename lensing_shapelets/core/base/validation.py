"""
Validation utilities for orders, arrays and coefficient vectors.

Validation uses minimal dependencies (numpy and standard library only) and
raises the package's own exceptions so callers can catch a single hierarchy.
"""

from typing import Any, Optional
import numbers

import numpy as np

from .exceptions import ValidationError, LengthError


def validate_order(order: Any, name: str = "order",
                   max_order: Optional[int] = None) -> int:
    """Validate a polynomial order.

    Parameters
    ----------
    order : int
        Order to check
    name : str
        Name of the parameter for error messages
    max_order : int, optional
        Largest supported order

    Returns
    -------
    int
        The order as a Python int

    Raises
    ------
    ValidationError
        If the order is not a non-negative integer or exceeds ``max_order``
    """
    if isinstance(order, bool) or not isinstance(order, numbers.Integral):
        raise ValidationError(
            f"Parameter '{name}' must be an integer, got {type(order).__name__}",
            field=name, value=order
        )
    order = int(order)
    if order < 0:
        raise ValidationError(f"Parameter '{name}' must be non-negative, got {order}",
                              field=name, value=order)
    if max_order is not None and order > max_order:
        raise ValidationError(
            f"Parameter '{name}' exceeds the supported maximum order ({order} > {max_order})",
            field=name, value=order
        )
    return order


def validate_vector_size(array: np.ndarray, expected: int, what: str) -> np.ndarray:
    """Check that a 1-d array has the expected length.

    Raises
    ------
    LengthError
        If the array is not one-dimensional or has the wrong size
    """
    if array.ndim != 1:
        raise LengthError(
            f"{what} must be one-dimensional, got shape {array.shape}",
            expected=expected, actual=array.size
        )
    if array.shape[0] != expected:
        raise LengthError(
            f"{what} has incorrect size ({array.shape[0]}, should be {expected}).",
            expected=expected, actual=array.shape[0]
        )
    return array


def as_coefficient_array(values: Any, expected: int, what: str = "Coefficient vector") -> np.ndarray:
    """Return a fresh float64 copy of ``values`` after checking its length."""
    array = np.array(values, dtype=np.float64, copy=True)
    return validate_vector_size(array, expected, what)

