"""
Constants, basis types and packed-index arithmetic for shapelet expansions.

A coefficient vector of order ``N`` holds ``compute_size(N)`` values laid out
as consecutive blocks for polynomial degree ``n = 0..N``; the degree-``n``
block starts at ``compute_offset(n)`` and has ``n + 1`` entries. In the
Hermite basis, the entry for the degree pair ``(x, y)`` sits at
``compute_offset(x + y) + y``, so each block runs from the highest power of
the first coordinate to the highest power of the second.
"""

from enum import Enum
import math

from ..core.base.exceptions import LengthError
from ..core.base.validation import validate_order


#: Normalization of the 1-d Hermite functions, pi^(-1/4).
BASIS_NORMALIZATION = math.pi ** -0.25

#: Integral of the zeroth 2-d basis function; the flux of a normalized function.
FLUX_FACTOR = 2.0 * math.sqrt(math.pi)


class BasisType(Enum):
    """Polynomial basis of a shapelet coefficient vector.

    ``HERMITE`` is the Cartesian-separable basis of products of 1-d Hermite
    functions. ``LAGUERRE`` is the polar basis indexed by azimuthal number,
    stored as packed real/imaginary pairs ordered by decreasing azimuthal
    index within each degree block.
    """

    HERMITE = "hermite"
    LAGUERRE = "laguerre"

    @property
    def is_hermite(self) -> bool:
        return self is BasisType.HERMITE

    @classmethod
    def parse(cls, value) -> "BasisType":
        """Accept a ``BasisType`` or its (case-insensitive) name."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = [member.value for member in cls]
            raise ValueError(f"Unknown basis type {value!r}; expected one of {valid}")


HERMITE = BasisType.HERMITE
LAGUERRE = BasisType.LAGUERRE


def compute_offset(order: int) -> int:
    """Index of the first coefficient of the degree-``order`` block."""
    return order * (order + 1) // 2


def compute_size(order: int) -> int:
    """Number of coefficients in an expansion of the given order."""
    order = validate_order(order)
    return (order + 1) * (order + 2) // 2


def compute_index(x: int, y: int) -> int:
    """Packed Hermite index of the degree pair ``(x, y)``."""
    return compute_offset(x + y) + y


def compute_order(size: int) -> int:
    """Inverse of :func:`compute_size`.

    Raises
    ------
    LengthError
        If ``size`` is not the size of any expansion
    """
    order = int((math.isqrt(8 * size + 1) - 3) // 2) if size > 0 else -1
    if order < 0 or compute_size(order) != size:
        raise LengthError(f"{size} is not a valid shapelet coefficient vector size", actual=size)
    return order
