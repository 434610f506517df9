"""
Shapelet functions: a coefficient vector on an elliptical Gaussian envelope.

:class:`ShapeletFunction` owns the coefficients; a
:class:`ShapeletFunctionEvaluator` binds a function's current state for
repeated evaluation, image rendering and analytic moments.
"""

from typing import Optional, Sequence, Tuple, Union
import logging

import numpy as np

from ..core.base.ellipses import AffineTransform, Ellipse, EllipseCore
from ..core.base.exceptions import OrderMismatchError, ValidationError, validate_positive
from ..core.base.validation import as_coefficient_array, validate_order
from .constants import BasisType, FLUX_FACTOR, compute_size
from .conversion import ConversionCache, ConversionMatrix
from .convolution import HermiteConvolution
from .hermite import HermiteEvaluator


logger = logging.getLogger(__name__)

ArrayLike = Union[float, np.ndarray]


class ShapeletFunction:
    """A 2-d function expanded in shapelets of a single basis and envelope.

    Parameters
    ----------
    order : int
        Maximum total polynomial degree
    basis_type : BasisType
        Basis of ``coefficients``
    ellipse : Ellipse, optional
        Gaussian envelope (defaults to the unit circle at the origin); copied
    coefficients : array_like, optional
        Coefficient vector of length ``compute_size(order)``; copied.
        Zero-filled when omitted.

    Raises
    ------
    LengthError
        If ``coefficients`` has the wrong length
    """

    def __init__(self, order: int = 0, basis_type: BasisType = BasisType.HERMITE,
                 ellipse: Optional[Ellipse] = None, coefficients: Optional[Sequence[float]] = None):
        self._order = validate_order(order)
        self._basis_type = BasisType.parse(basis_type)
        self._ellipse = ellipse.copy() if ellipse is not None else Ellipse(EllipseCore(1.0, 1.0, 0.0))
        size = compute_size(self._order)
        if coefficients is None:
            self._coefficients = np.zeros(size)
        else:
            self._coefficients = as_coefficient_array(
                coefficients, size, "Coefficient vector for ShapeletFunction"
            )

    @classmethod
    def from_radius(cls, order: int, basis_type: BasisType = BasisType.HERMITE,
                    radius: float = 1.0, center: Sequence[float] = (0.0, 0.0),
                    coefficients: Optional[Sequence[float]] = None) -> "ShapeletFunction":
        """Create a function with a circular envelope."""
        validate_positive(radius, "radius")
        return cls(order, basis_type, Ellipse(EllipseCore.from_radius(radius), center), coefficients)

    @property
    def order(self) -> int:
        return self._order

    @property
    def basis_type(self) -> BasisType:
        return self._basis_type

    @property
    def ellipse(self) -> Ellipse:
        return self._ellipse

    @property
    def coefficients(self) -> np.ndarray:
        """The owned coefficient array (modifications are seen by the function)."""
        return self._coefficients

    def get_order(self) -> int:
        return self._order

    def get_basis_type(self) -> BasisType:
        return self._basis_type

    def get_ellipse(self) -> Ellipse:
        return self._ellipse

    def get_coefficients(self) -> np.ndarray:
        return self._coefficients

    def change_basis_type(self, basis_type: BasisType,
                          cache: Optional[ConversionCache] = None) -> None:
        """Convert the coefficients to another basis in place."""
        basis_type = BasisType.parse(basis_type)
        ConversionMatrix.convert_coefficient_vector(
            self._coefficients, self._basis_type, basis_type, self._order, cache=cache
        )
        self._basis_type = basis_type

    def set_ellipse(self, ellipse: Ellipse) -> None:
        """Replace the envelope with a copy of ``ellipse``."""
        self._ellipse = ellipse.copy()

    def set_coefficients(self, coefficients: Sequence[float]) -> None:
        """Replace the coefficients (length-checked) without changing the order."""
        self._coefficients[:] = as_coefficient_array(
            coefficients, compute_size(self._order), "Coefficient vector for ShapeletFunction"
        )

    def normalize(self, value: float = FLUX_FACTOR) -> None:
        """Scale the coefficients so the function integrates to ``value``.

        The default makes the zeroth coefficient of a pure Gaussian exactly one.

        Raises
        ------
        ValidationError
            If the current integral is zero
        """
        flux = self.evaluate().integrate()
        if flux == 0.0:
            raise ValidationError("Cannot normalize a shapelet function with zero flux",
                                  field="coefficients")
        self._coefficients *= value / flux

    def evaluate(self) -> "ShapeletFunctionEvaluator":
        """Construct an evaluator bound to the current state."""
        return ShapeletFunctionEvaluator(self)

    def hermite_coefficients(self, cache: Optional[ConversionCache] = None) -> np.ndarray:
        """Return a new array with the coefficients in the Hermite basis."""
        result = self._coefficients.copy()
        ConversionMatrix.convert_coefficient_vector(
            result, self._basis_type, BasisType.HERMITE, self._order, cache=cache
        )
        return result

    def convolve(self, other: "ShapeletFunction",
                 cache: Optional[ConversionCache] = None) -> "ShapeletFunction":
        """Convolve with another shapelet function.

        The result is the plain convolution integral, so its flux is the
        product of the operands' fluxes; normalize ``other`` to unit flux
        to preserve the flux of ``self``. Neither operand is modified; the
        result is always in the Hermite basis and has order
        ``self.order + other.order``.
        """
        convolution = HermiteConvolution(self._order, other, cache=cache)
        matrix, ellipse = convolution.evaluate(self._ellipse)
        coefficients = matrix @ self.hermite_coefficients(cache=cache)
        return ShapeletFunction(convolution.row_order, BasisType.HERMITE, ellipse, coefficients)

    def copy(self) -> "ShapeletFunction":
        """Deep copy."""
        return ShapeletFunction(self._order, self._basis_type, self._ellipse, self._coefficients)

    def assign(self, other: "ShapeletFunction") -> "ShapeletFunction":
        """Copy the state of ``other`` into this function.

        The existing coefficient array is reused when the orders agree.
        """
        if other is self:
            return self
        if other.order != self._order:
            self._order = other.order
            self._coefficients = other.coefficients.copy()
        else:
            self._coefficients[:] = other.coefficients
        self._basis_type = other.basis_type
        self._ellipse = other.ellipse.copy()
        return self

    def __copy__(self) -> "ShapeletFunction":
        return self.copy()

    def __deepcopy__(self, memo) -> "ShapeletFunction":
        return self.copy()

    def __repr__(self) -> str:
        return (f"ShapeletFunction(order={self._order}, basis_type={self._basis_type.name}, "
                f"ellipse={self._ellipse})")


class ShapeletFunctionEvaluator:
    """Evaluates a :class:`ShapeletFunction`.

    The evaluator copies what it needs at construction (or :meth:`update`):
    the envelope's grid transform, its Jacobian and a Hermite-basis
    coefficient vector. Later changes to the function are not seen until
    :meth:`update` is called.

    Parameters
    ----------
    function : ShapeletFunction
        Function to bind
    cache : ConversionCache, optional
        Conversion cache for Laguerre-basis functions
    """

    def __init__(self, function: ShapeletFunction, cache: Optional[ConversionCache] = None):
        self._cache = cache
        self._h = HermiteEvaluator(function.order)
        self._initialize(function)

    def update(self, function: ShapeletFunction) -> None:
        """Rebind to ``function``, which must have the same order.

        Raises
        ------
        OrderMismatchError
            If the order differs from the one the evaluator was built for
        """
        if function.order != self._h.order:
            raise OrderMismatchError(
                f"Cannot update a ShapeletFunctionEvaluator of order {self._h.order} "
                f"with a function of order {function.order}.",
                expected=self._h.order, actual=function.order
            )
        self._initialize(function)

    def _initialize(self, function: ShapeletFunction) -> None:
        self._transform = function.ellipse.get_grid_transform()
        self._normalization = abs(self._transform.compute_determinant())
        if function.basis_type is BasisType.HERMITE:
            self._coefficients = function.coefficients.copy()
        else:
            self._coefficients = function.hermite_coefficients(cache=self._cache)

    @property
    def order(self) -> int:
        return self._h.order

    @property
    def transform(self) -> AffineTransform:
        """Grid transform from the target frame onto the unit-circle frame."""
        return self._transform

    @property
    def normalization(self) -> float:
        """Jacobian of the grid transform."""
        return self._normalization

    @property
    def coefficients(self) -> np.ndarray:
        """Bound Hermite-basis coefficients."""
        return self._coefficients

    def __call__(self, x: ArrayLike, y: ArrayLike) -> ArrayLike:
        """Evaluate at target-frame point(s) ``(x, y)``."""
        u, v = self._transform(np.asarray(x, dtype=np.float64), np.asarray(y, dtype=np.float64))
        return self._normalization * self._h.sum_evaluation(self._coefficients, u, v)

    def add_to_image(self, array: np.ndarray, xy0: Tuple[int, int] = (0, 0)) -> np.ndarray:
        """Add the function's value at each pixel to ``array`` in place.

        Pixel ``array[i, j]`` sits at ``(xy0[0] + j, xy0[1] + i)``.

        Returns
        -------
        np.ndarray
            ``array``, for chaining
        """
        if array.ndim != 2:
            raise ValidationError(f"Image array must be 2-d, got shape {array.shape}",
                                  field="array")
        height, width = array.shape
        y, x = np.mgrid[xy0[1]:xy0[1] + height, xy0[0]:xy0[0] + width]
        array += self(x, y)
        return array

    def integrate(self) -> float:
        """Total flux."""
        return self._h.sum_integration(self._coefficients)

    def _compute_raw_moments(self) -> Tuple[float, np.ndarray, np.ndarray]:
        a = self._transform.linear.invert().matrix
        b = self._transform.translation

        m0 = self._h.sum_integration(self._coefficients, 0, 0)
        m1 = np.array([
            self._h.sum_integration(self._coefficients, 1, 0),
            self._h.sum_integration(self._coefficients, 0, 1),
        ])
        m2 = np.empty((2, 2))
        m2[0, 0] = self._h.sum_integration(self._coefficients, 2, 0)
        m2[1, 1] = self._h.sum_integration(self._coefficients, 0, 2)
        m2[0, 1] = m2[1, 0] = self._h.sum_integration(self._coefficients, 1, 1)

        q1 = a @ (m1 - b * m0)
        q2 = a @ (m2 + np.outer(b, b) * m0 - np.outer(m1, b) - np.outer(b, m1)) @ a.T
        return m0, q1, q2

    def compute_moments(self) -> Ellipse:
        """Flux-normalized centroid and quadrupole, as an ellipse.

        The quadrupole is not validated: a function with negative regions
        can have centered second moments that are not positive definite.

        Raises
        ------
        ValidationError
            If the flux is zero
        """
        q0, q1, q2 = self._compute_raw_moments()
        if q0 == 0.0:
            raise ValidationError("Cannot compute moments of a function with zero flux",
                                  field="coefficients")
        q1 = q1 / q0
        q2 = q2 / q0
        q2 = q2 - np.outer(q1, q1)
        return Ellipse(EllipseCore.from_matrix(q2, validate=False), q1)

    def __repr__(self) -> str:
        return f"ShapeletFunctionEvaluator(order={self._h.order})"
