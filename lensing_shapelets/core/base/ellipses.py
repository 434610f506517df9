"""
Ellipse and affine-transform utilities with minimal dependencies.

This module provides the geometric primitives shapelet expansions are built
on: a second-moment (quadrupole) ellipse core, an ellipse with a center, and
the linear/affine transforms that map an ellipse onto the unit circle. All
operations use only numpy and standard library functions.
"""

from dataclasses import dataclass, field
from typing import Tuple, Union, Sequence
import math

import numpy as np

from .exceptions import GeometryError


ArrayLike = Union[float, np.ndarray]


class LinearTransform:
    """A 2x2 linear map of the plane."""

    def __init__(self, matrix: Union[np.ndarray, Sequence[Sequence[float]]] = None):
        if matrix is None:
            matrix = np.identity(2)
        self.matrix = np.array(matrix, dtype=np.float64)
        if self.matrix.shape != (2, 2):
            raise GeometryError(f"Linear transform must be 2x2, got shape {self.matrix.shape}",
                                operation="LinearTransform")

    def compute_determinant(self) -> float:
        """Determinant of the matrix."""
        return float(np.linalg.det(self.matrix))

    def invert(self) -> "LinearTransform":
        """Return the inverse transform.

        Raises
        ------
        GeometryError
            If the transform is singular
        """
        det = self.compute_determinant()
        if det == 0.0:
            raise GeometryError("Cannot invert a singular linear transform", operation="invert")
        a, b = self.matrix[0]
        c, d = self.matrix[1]
        return LinearTransform(np.array([[d, -b], [-c, a]]) / det)

    def __call__(self, x: ArrayLike, y: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        m = self.matrix
        return m[0, 0] * x + m[0, 1] * y, m[1, 0] * x + m[1, 1] * y

    def __matmul__(self, other: "LinearTransform") -> "LinearTransform":
        return LinearTransform(self.matrix @ other.matrix)

    def __repr__(self) -> str:
        return f"LinearTransform({self.matrix.tolist()})"


class AffineTransform:
    """An affine map ``u = linear . x + translation`` of the plane."""

    def __init__(self, linear: LinearTransform = None,
                 translation: Union[np.ndarray, Sequence[float]] = (0.0, 0.0)):
        self.linear = linear if linear is not None else LinearTransform()
        self.translation = np.array(translation, dtype=np.float64).reshape(2)

    def invert(self) -> "AffineTransform":
        """Return the inverse affine transform."""
        inverse = self.linear.invert()
        return AffineTransform(inverse, -(inverse.matrix @ self.translation))

    def compute_determinant(self) -> float:
        """Determinant of the linear part (area scaling of the map)."""
        return self.linear.compute_determinant()

    def __call__(self, x: ArrayLike, y: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        u, v = self.linear(x, y)
        return u + self.translation[0], v + self.translation[1]

    def __repr__(self) -> str:
        return f"AffineTransform(linear={self.linear.matrix.tolist()}, translation={self.translation.tolist()})"


@dataclass
class EllipseCore:
    """Ellipse shape in the quadrupole (second-moment) parametrization.

    Parameters
    ----------
    ixx : float
        Second moment along x
    iyy : float
        Second moment along y
    ixy : float
        Cross moment
    validate : bool
        Require a finite, positive-definite quadrupole. Measured moments
        of functions with negative regions are kept with ``validate=False``.
    """

    ixx: float = 1.0
    iyy: float = 1.0
    ixy: float = 0.0
    validate: bool = field(default=True, repr=False, compare=False)

    def __post_init__(self):
        """Validate the quadrupole after initialization."""
        self.ixx = float(self.ixx)
        self.iyy = float(self.iyy)
        self.ixy = float(self.ixy)
        if self.validate:
            self._validate()

    def _validate(self):
        if not (np.isfinite(self.ixx) and np.isfinite(self.iyy) and np.isfinite(self.ixy)):
            raise GeometryError("Ellipse moments must be finite", operation="EllipseCore")
        if self.ixx <= 0 or self.iyy <= 0 or self.ixx * self.iyy - self.ixy ** 2 <= 0:
            raise GeometryError(
                f"Ellipse quadrupole must be positive definite, got "
                f"(ixx={self.ixx}, iyy={self.iyy}, ixy={self.ixy})",
                operation="EllipseCore"
            )

    @classmethod
    def from_axes(cls, a: float, b: float, theta: float = 0.0) -> "EllipseCore":
        """Create from semi-major axis, semi-minor axis and position angle (radians).

        Returns
        -------
        EllipseCore
            Core whose second moments are ``R diag(a^2, b^2) R^T``
        """
        if a <= 0 or b <= 0:
            raise GeometryError(f"Ellipse axes must be positive, got a={a}, b={b}",
                                operation="from_axes")
        c, s = math.cos(theta), math.sin(theta)
        a2, b2 = a * a, b * b
        return cls(
            ixx=c * c * a2 + s * s * b2,
            iyy=s * s * a2 + c * c * b2,
            ixy=c * s * (a2 - b2),
        )

    @classmethod
    def from_radius(cls, radius: float) -> "EllipseCore":
        """Create a circle of the given radius."""
        return cls.from_axes(radius, radius, 0.0)

    @classmethod
    def from_matrix(cls, matrix: np.ndarray, validate: bool = True) -> "EllipseCore":
        """Create from a symmetric 2x2 second-moment matrix."""
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (2, 2):
            raise GeometryError(f"Quadrupole matrix must be 2x2, got shape {matrix.shape}",
                                operation="from_matrix")
        return cls(matrix[0, 0], matrix[1, 1], 0.5 * (matrix[0, 1] + matrix[1, 0]), validate=validate)

    def get_matrix(self) -> np.ndarray:
        """Return the 2x2 second-moment matrix."""
        return np.array([[self.ixx, self.ixy], [self.ixy, self.iyy]])

    def get_axes(self) -> Tuple[float, float, float]:
        """Return ``(a, b, theta)`` with ``a >= b``."""
        xx_p_yy = 0.5 * (self.ixx + self.iyy)
        t = math.hypot(0.5 * (self.ixx - self.iyy), self.ixy)
        if xx_p_yy + t < 0:
            raise GeometryError(f"Quadrupole {self} has no real axes", operation="get_axes")
        a = math.sqrt(xx_p_yy + t)
        b = math.sqrt(max(xx_p_yy - t, 0.0))
        theta = 0.5 * math.atan2(2.0 * self.ixy, self.ixx - self.iyy)
        return a, b, theta

    def get_determinant_radius(self) -> float:
        """Fourth root of the determinant of the quadrupole."""
        determinant = self.ixx * self.iyy - self.ixy ** 2
        if determinant < 0:
            raise GeometryError(f"Quadrupole {self} has a negative determinant",
                                operation="get_determinant_radius")
        return determinant ** 0.25

    def get_area(self) -> float:
        """Area of the 1-sigma ellipse."""
        return math.pi * self.get_determinant_radius() ** 2

    def get_grid_transform(self) -> LinearTransform:
        """Linear transform that maps this ellipse onto the unit circle.

        The transform rotates by ``-theta`` and rescales the axes, so the
        first unit-frame coordinate runs along the major axis.
        """
        a, b, theta = self.get_axes()
        if b <= 0:
            raise GeometryError("Cannot build the grid transform of a degenerate ellipse",
                                operation="get_grid_transform")
        c, s = math.cos(theta), math.sin(theta)
        return LinearTransform(np.array([[c / a, s / a], [-s / b, c / b]]))

    def scale(self, factor: float) -> None:
        """Scale both axes by ``factor`` in place."""
        f2 = factor * factor
        self.ixx *= f2
        self.iyy *= f2
        self.ixy *= f2
        if self.validate:
            self._validate()

    def convolve(self, other: "EllipseCore") -> "EllipseCore":
        """Core of the convolution of two Gaussians (second moments add)."""
        return EllipseCore(self.ixx + other.ixx, self.iyy + other.iyy, self.ixy + other.ixy)

    def __str__(self) -> str:
        return f"EllipseCore(ixx={self.ixx:.6g}, iyy={self.iyy:.6g}, ixy={self.ixy:.6g})"


@dataclass(eq=False)
class Ellipse:
    """An ellipse core positioned at a center point."""

    core: EllipseCore = field(default_factory=EllipseCore)
    center: np.ndarray = field(default_factory=lambda: np.zeros(2))

    def __post_init__(self):
        self.center = np.array(self.center, dtype=np.float64).reshape(2)

    def get_grid_transform(self) -> AffineTransform:
        """Affine transform ``u = L (x - center)`` onto the unit circle."""
        linear = self.core.get_grid_transform()
        return AffineTransform(linear, -(linear.matrix @ self.center))

    def convolve(self, other: "Ellipse") -> "Ellipse":
        """Ellipse of the convolution of two Gaussians (moments and centers add)."""
        return Ellipse(self.core.convolve(other.core), self.center + other.center)

    def copy(self) -> "Ellipse":
        """Return a deep copy."""
        core = EllipseCore(self.core.ixx, self.core.iyy, self.core.ixy, validate=self.core.validate)
        return Ellipse(core, self.center.copy())

    def __str__(self) -> str:
        return f"Ellipse({self.core}, center=({self.center[0]:.6g}, {self.center[1]:.6g}))"
