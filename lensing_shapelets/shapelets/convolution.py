"""
Analytic convolution of Hermite shapelet expansions.

A Hermite expansion with envelope grid transform ``u = L (x - c)`` is

    f(x) = |det L| sum_i a_i psi_i(u),

i.e. a polynomial times the Gaussian ``G(x) = exp(-|u|^2 / 2)``. Any such
function can be written as a polynomial in the pixel-frame derivative
operators applied to ``G``. Convolution commutes with differentiation, so
the convolution of two expansions is the product of their derivative
polynomials applied to ``G1 * G2``, a Gaussian whose second moments and
center are the sums of the operands'. The result is mapped back into the
Hermite basis of that combined envelope.

Every step is a dense matrix built in closed form:

1. Hermite coefficients to unit-frame derivative coefficients
   (:func:`~lensing_shapelets.shapelets.hermite.hermite_to_derivative`).
2. Unit-frame to pixel-frame derivatives, ``d/du = L^-T d/dx``, applied per
   degree by :func:`substitution_matrix`.
3. Multiplication by the point-spread derivative polynomial
   (:func:`product_matrix`).
4. Pixel-frame to the result's unit-frame derivatives, ``d/dx = L3^T d/du``.
5. Derivative coefficients back to Hermite coefficients.
"""

from typing import Optional, Tuple, TYPE_CHECKING
import logging
import math

import numpy as np
from scipy.special import comb

from ..core.base.ellipses import Ellipse
from ..core.base.validation import validate_order
from .constants import BasisType, compute_size, compute_index, compute_offset
from .conversion import ConversionCache, ConversionMatrix, get_conversion_cache
from .hermite import hermite_to_derivative, derivative_to_hermite

if TYPE_CHECKING:
    from .function import ShapeletFunction


logger = logging.getLogger(__name__)


def substitution_matrix(matrix: np.ndarray, n: int) -> np.ndarray:
    """Change of variables for homogeneous polynomials of degree ``n``.

    Maps the coefficients of a polynomial in ``w`` (monomial ``j`` is
    ``w1^(n-j) w2^j``) to those of the same polynomial in ``z`` where
    ``w = matrix . z``.
    """
    (m00, m01), (m10, m11) = np.asarray(matrix, dtype=np.float64)
    result = np.zeros((n + 1, n + 1))
    for j in range(n + 1):
        a, b = n - j, j
        for r in range(a + 1):
            t1 = comb(a, r) * m00 ** (a - r) * m01 ** r
            if t1 == 0.0:
                continue
            for s in range(b + 1):
                result[r + s, j] += t1 * comb(b, s) * m10 ** (b - s) * m11 ** s
    return result


def packed_substitution_matrix(matrix: np.ndarray, order: int) -> np.ndarray:
    """Block-diagonal :func:`substitution_matrix` over degrees ``0..order``."""
    size = compute_size(order)
    result = np.zeros((size, size))
    for n in range(order + 1):
        offset = compute_offset(n)
        result[offset:offset + n + 1, offset:offset + n + 1] = substitution_matrix(matrix, n)
    return result


def product_matrix(factor: np.ndarray, factor_order: int, col_order: int) -> np.ndarray:
    """Matrix multiplying a packed polynomial of order ``col_order`` by ``factor``.

    Returns
    -------
    np.ndarray
        Array of shape ``(compute_size(factor_order + col_order), compute_size(col_order))``
    """
    result = np.zeros((compute_size(factor_order + col_order), compute_size(col_order)))
    for n1 in range(col_order + 1):
        for y1 in range(n1 + 1):
            col = compute_index(n1 - y1, y1)
            for n2 in range(factor_order + 1):
                for y2 in range(n2 + 1):
                    x2 = n2 - y2
                    result[compute_index(n1 - y1 + x2, y1 + y2), col] += factor[compute_index(x2, y2)]
    return result


class HermiteConvolution:
    """A parametrized matrix that performs a convolution in shapelet space.

    Parameters
    ----------
    col_order : int
        Order of the Hermite expansions to be convolved
    psf : ShapeletFunction
        Point-spread function to convolve with; Laguerre coefficients are
        converted to a Hermite copy
    cache : ConversionCache, optional
        Conversion cache used for a Laguerre point-spread function; its
        limit bounds both orders (defaults to the shared cache)
    """

    def __init__(self, col_order: int, psf: "ShapeletFunction",
                 cache: Optional[ConversionCache] = None):
        if cache is None:
            cache = get_conversion_cache()
        max_order = cache.limit
        self._col_order = validate_order(col_order, "col_order", max_order=max_order)
        self._psf_order = psf.order
        self._row_order = validate_order(self._col_order + self._psf_order, "row_order",
                                         max_order=max_order)
        self._psf_ellipse = psf.ellipse.copy()

        psf_coefficients = np.array(psf.coefficients, dtype=np.float64)
        if psf.basis_type is not BasisType.HERMITE:
            ConversionMatrix.convert_coefficient_vector(
                psf_coefficients, psf.basis_type, BasisType.HERMITE, self._psf_order, cache=cache
            )
        self._psf_derivatives = hermite_to_derivative(self._psf_order) @ psf_coefficients
        self._col_to_derivatives = hermite_to_derivative(self._col_order)
        self._derivatives_to_row = derivative_to_hermite(self._row_order)

    @property
    def col_order(self) -> int:
        """Order of the to-be-convolved shapelet basis."""
        return self._col_order

    @property
    def row_order(self) -> int:
        """Order of the post-convolution shapelet basis."""
        return self._row_order

    def get_col_order(self) -> int:
        return self._col_order

    def get_row_order(self) -> int:
        return self._row_order

    def evaluate(self, ellipse: Ellipse) -> Tuple[np.ndarray, Ellipse]:
        """Evaluate the convolution matrix for an unconvolved envelope.

        Parameters
        ----------
        ellipse : Ellipse
            Envelope of the unconvolved expansion; not modified

        Returns
        -------
        tuple
            ``(matrix, convolved_ellipse)``; ``matrix`` has shape
            ``(compute_size(row_order), compute_size(col_order))`` and maps
            Hermite coefficients on ``ellipse`` to Hermite coefficients of the
            convolved function on ``convolved_ellipse``. Both are new objects.
        """
        convolved = ellipse.convolve(self._psf_ellipse)

        l1 = ellipse.core.get_grid_transform()
        l2 = self._psf_ellipse.core.get_grid_transform()
        l3 = convolved.core.get_grid_transform()

        psf_pixel = packed_substitution_matrix(l2.invert().matrix.T, self._psf_order) @ self._psf_derivatives
        col_pixel = packed_substitution_matrix(l1.invert().matrix.T, self._col_order) @ self._col_to_derivatives
        product = product_matrix(psf_pixel, self._psf_order, self._col_order) @ col_pixel
        matrix = self._derivatives_to_row @ (packed_substitution_matrix(l3.matrix.T, self._row_order) @ product)

        # G1 * G2 = 2 pi sqrt(|Q1| |Q2| / |Q3|) G3; the grid determinants are |Q|^(-1/2).
        q1 = np.linalg.det(ellipse.core.get_matrix())
        q2 = np.linalg.det(self._psf_ellipse.core.get_matrix())
        q3 = np.linalg.det(convolved.core.get_matrix())
        gaussian_norm = 2.0 * math.pi * math.sqrt(q1 * q2 / q3)
        jacobian = abs(l1.compute_determinant() * l2.compute_determinant() / l3.compute_determinant())
        matrix *= gaussian_norm * jacobian

        logger.debug(f"Evaluated {matrix.shape[0]}x{matrix.shape[1]} convolution matrix for {ellipse}")
        return matrix, convolved

    def __repr__(self) -> str:
        return f"HermiteConvolution(col_order={self._col_order}, row_order={self._row_order})"
