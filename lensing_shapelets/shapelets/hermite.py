"""
Hermite-function evaluation and integration for shapelet expansions.

The 2-d basis functions are products ``psi_i(u) psi_j(v)`` of the normalized
1-d Hermite functions

    psi_n(u) = (2^n n! sqrt(pi))^(-1/2) H_n(u) exp(-u^2 / 2),

evaluated in the dimensionless frame where the envelope is a unit circle.
Moments are computed analytically from the ladder relation

    u psi_n = sqrt((n + 1) / 2) psi_(n+1) + sqrt(n / 2) psi_(n-1),

so no quadrature is involved.
"""

from functools import lru_cache
from typing import Tuple, Union
import math

import numpy as np

from ..core.base.exceptions import ValidationError
from ..core.base.validation import validate_order, validate_vector_size
from .constants import BASIS_NORMALIZATION, compute_size, compute_index, compute_offset


ArrayLike = Union[float, np.ndarray]

#: Highest moment (per axis) the integration kernels support.
MAX_MOMENT = 2


def fill_hermite_1d(order: int, x: ArrayLike) -> np.ndarray:
    """Evaluate psi_0..psi_order at ``x``.

    Returns
    -------
    np.ndarray
        Array of shape ``(order + 1,) + np.shape(x)``
    """
    x = np.asarray(x, dtype=np.float64)
    result = np.empty((order + 1,) + x.shape)
    result[0] = BASIS_NORMALIZATION * np.exp(-0.5 * x * x)
    if order > 0:
        result[1] = math.sqrt(2.0) * x * result[0]
    for n in range(2, order + 1):
        result[n] = math.sqrt(2.0 / n) * x * result[n - 1] - math.sqrt((n - 1.0) / n) * result[n - 2]
    return result


@lru_cache(maxsize=None)
def _integration_kernels_1d(order: int) -> np.ndarray:
    """Moments of the 1-d Hermite functions.

    Row ``k`` holds ``integral u^k psi_n(u) du`` for ``n = 0..order``,
    ``k = 0..MAX_MOMENT``.
    """
    size = order + MAX_MOMENT + 1
    kernels = np.zeros((MAX_MOMENT + 1, size))
    kernels[0, 0] = math.sqrt(2.0) * math.pi ** 0.25
    for n in range(2, size, 2):
        kernels[0, n] = kernels[0, n - 2] * math.sqrt((n - 1.0) / n)
    for k in range(1, MAX_MOMENT + 1):
        for n in range(size - k):
            value = math.sqrt((n + 1.0) / 2.0) * kernels[k - 1, n + 1]
            if n > 0:
                value += math.sqrt(n / 2.0) * kernels[k - 1, n - 1]
            kernels[k, n] = value
    result = kernels[:, :order + 1].copy()
    result.flags.writeable = False
    return result


def hermite_to_derivative_1d(order: int) -> np.ndarray:
    """Matrix ``A`` with ``psi_n(u) = sum_k A[k, n] He_k(u) exp(-u^2 / 2)``.

    ``He_k`` are the probabilists' Hermite polynomials, i.e.
    ``He_k(u) exp(-u^2/2) = (-1)^k d^k/du^k exp(-u^2/2)``. The expansion
    follows from the generating functions:
    ``H_n = sum_j n! / (j! (n - 2j)!) 2^(n - 2j) He_(n - 2j)``.
    """
    a = np.zeros((order + 1, order + 1))
    for n in range(order + 1):
        norm = BASIS_NORMALIZATION / math.sqrt(2.0 ** n * math.factorial(n))
        for j in range(n // 2 + 1):
            k = n - 2 * j
            a[k, n] = norm * math.factorial(n) / (math.factorial(j) * math.factorial(k)) * 2.0 ** k
    return a


def derivative_to_hermite_1d(order: int) -> np.ndarray:
    """Matrix ``B`` with ``He_n(u) exp(-u^2 / 2) = sum_k B[k, n] psi_k(u)``.

    Inverse of :func:`hermite_to_derivative_1d`, from
    ``He_n = 2^(-n) sum_j (-1)^j n! / (j! (n - 2j)!) H_(n - 2j)``.
    """
    b = np.zeros((order + 1, order + 1))
    for n in range(order + 1):
        for j in range(n // 2 + 1):
            k = n - 2 * j
            inv_norm = math.sqrt(2.0 ** k * math.factorial(k)) / BASIS_NORMALIZATION
            b[k, n] = ((-1) ** j * 2.0 ** -n * math.factorial(n)
                       / (math.factorial(j) * math.factorial(k)) * inv_norm)
    return b


def _packed_product_matrix(m: np.ndarray, order: int, signed: bool) -> np.ndarray:
    """Packed 2-d matrix ``M[(k, l), (x, y)] = m[k, x] m[l, y]``.

    ``m`` must map degree ``n`` onto degrees ``n, n - 2, ...``; with ``signed``
    the row of output degree ``d`` is multiplied by ``(-1)^d``.
    """
    size = compute_size(order)
    result = np.zeros((size, size))
    for n in range(order + 1):
        for y in range(n + 1):
            x = n - y
            col = compute_index(x, y)
            for k in range(x, -1, -2):
                for l in range(y, -1, -2):
                    value = m[k, x] * m[l, y]
                    if signed and (k + l) % 2:
                        value = -value
                    result[compute_index(k, l), col] = value
    return result


@lru_cache(maxsize=None)
def hermite_to_derivative(order: int) -> np.ndarray:
    """Packed 2-d map from Hermite coefficients to unit-frame derivative coefficients.

    If ``c`` are Hermite coefficients, ``h = hermite_to_derivative(order) @ c``
    satisfies ``sum c_i psi_i(u) = sum h_(k,l) d^k/du^k d^l/dv^l phi(u, v)``
    with ``phi = exp(-(u^2 + v^2) / 2)``.
    """
    result = _packed_product_matrix(hermite_to_derivative_1d(order), order, signed=True)
    result.flags.writeable = False
    return result


@lru_cache(maxsize=None)
def derivative_to_hermite(order: int) -> np.ndarray:
    """Inverse of :func:`hermite_to_derivative`."""
    result = _packed_product_matrix(derivative_to_hermite_1d(order), order, signed=True)
    result.flags.writeable = False
    return result


class HermiteEvaluator:
    """Evaluate and integrate packed 2-d Hermite expansions of a fixed order.

    Parameters
    ----------
    order : int
        Maximum total polynomial degree
    """

    def __init__(self, order: int):
        self._order = validate_order(order)
        self._size = compute_size(self._order)
        self._kernels = _integration_kernels_1d(self._order)

    @property
    def order(self) -> int:
        return self._order

    @property
    def size(self) -> int:
        return self._size

    def fill_evaluation(self, x: ArrayLike, y: ArrayLike) -> np.ndarray:
        """Packed basis values at unit-frame points ``(x, y)``.

        Returns
        -------
        np.ndarray
            Array of shape ``(size,) + broadcast shape of x and y``
        """
        x, y = np.broadcast_arrays(np.asarray(x, dtype=np.float64), np.asarray(y, dtype=np.float64))
        hx = fill_hermite_1d(self._order, x)
        hy = fill_hermite_1d(self._order, y)
        result = np.empty((self._size,) + x.shape)
        for n in range(self._order + 1):
            offset = compute_offset(n)
            for j in range(n + 1):
                result[offset + j] = hx[n - j] * hy[j]
        return result

    def sum_evaluation(self, coefficients: np.ndarray, x: ArrayLike, y: ArrayLike) -> ArrayLike:
        """Value of the expansion at unit-frame points ``(x, y)``."""
        validate_vector_size(coefficients, self._size, "Coefficient vector")
        values = np.tensordot(coefficients, self.fill_evaluation(x, y), axes=(0, 0))
        if np.ndim(values) == 0:
            return float(values)
        return values

    def fill_integration(self, x_moment: int = 0, y_moment: int = 0) -> np.ndarray:
        """Packed vector of ``integral u^x_moment v^y_moment psi_i(u) psi_j(v)``."""
        if not (0 <= x_moment <= MAX_MOMENT and 0 <= y_moment <= MAX_MOMENT):
            raise ValidationError(
                f"Moments up to {MAX_MOMENT} per axis are supported, got ({x_moment}, {y_moment})",
                field="moment", value=(x_moment, y_moment)
            )
        kx = self._kernels[x_moment]
        ky = self._kernels[y_moment]
        result = np.empty(self._size)
        for n in range(self._order + 1):
            offset = compute_offset(n)
            for j in range(n + 1):
                result[offset + j] = kx[n - j] * ky[j]
        return result

    def sum_integration(self, coefficients: np.ndarray, x_moment: int = 0, y_moment: int = 0) -> float:
        """Raw unit-frame moment of the expansion with the given coefficients."""
        validate_vector_size(coefficients, self._size, "Coefficient vector")
        return float(np.dot(coefficients, self.fill_integration(x_moment, y_moment)))

    def __repr__(self) -> str:
        return f"HermiteEvaluator(order={self._order})"
