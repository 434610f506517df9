"""
Conversion between the Hermite and Laguerre shapelet bases.

Both bases span the same space at every polynomial degree, so conversion is
block diagonal: a dense ``(n + 1) x (n + 1)`` block per degree ``n``. The
Hermite-to-Laguerre blocks are built in closed form from binomial sums and
the reverse blocks are their matrix inverses. Blocks are held by a
:class:`ConversionCache`, which grows on demand and never recomputes a block.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
import logging
import threading

import numpy as np
from scipy import linalg
from scipy.special import comb, factorial

from ..core.base.exceptions import LengthError, ValidationError
from ..core.base.validation import validate_order
from ..core.config.settings import get_config
from ..core.managers.log_manager import PerformanceLogger
from .constants import BasisType, compute_size, compute_offset


logger = logging.getLogger(__name__)
_performance = PerformanceLogger(logger)


def _i_pow(z: int) -> complex:
    """Exact integer power of the imaginary unit."""
    return (1.0 + 0.0j, 1.0j, -1.0 + 0.0j, -1.0j)[z % 4]


def make_block_h2l(n: int) -> np.ndarray:
    """Hermite-to-Laguerre conversion block for polynomial degree ``n``.

    The complex Laguerre functions of degree ``n`` have azimuthal index
    ``m = -n, -n + 2, ..., n``; each is a binomial sum over Hermite degree
    pairs. The complex block is packed into a real one by writing, from the
    highest azimuthal index down, the real part into an even row and the
    negated imaginary part into the following odd row.
    """
    c = np.zeros((n + 1, n + 1), dtype=np.complex128)
    for i, m in enumerate(range(-n, n + 1, 2)):
        p = (n + m) // 2
        q = (n - m) // 2
        v1 = _i_pow(-m) * 2.0 ** (-0.5 * n) / np.sqrt(factorial(p) * factorial(q))
        for x in range(n + 1):
            y = n - x
            v2 = v1 * np.sqrt(factorial(x) * factorial(y))
            for r in range(min(p, x) + 1):
                s = x - r
                if s > q:
                    continue
                c[i, x] += v2 * _i_pow(r - s) * comb(p, r) * comb(q, s)

    b = np.zeros((n + 1, n + 1))
    for x in range(n + 1):
        p, q = n, 0
        while q <= p:
            b[2 * q, x] = c[q, x].real
            if q < p:
                b[2 * q + 1, x] = -c[q, x].imag
            p -= 1
            q += 1
    return b


#: Builders of the Hermite-to-basis block for every non-Hermite basis.
BLOCK_BUILDERS: Dict[BasisType, Callable[[int], np.ndarray]] = {
    BasisType.LAGUERRE: make_block_h2l,
}


@dataclass
class ConversionCacheStats:
    """Cache statistics."""
    hits: int = 0
    misses: int = 0
    blocks_built: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate hit rate."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class ConversionCache:
    """Per-order cache of basis-conversion blocks.

    For each non-Hermite basis the cache holds the Hermite-to-basis block of
    every order up to :attr:`max_order` together with its inverse. Growth
    through :meth:`ensure` is serialized by a lock; once an order is cached
    its blocks are read without locking and are never rebuilt.

    Parameters
    ----------
    limit : int, optional
        Highest order the cache will build (defaults to ``max_order`` of the
        global configuration)
    """

    def __init__(self, limit: Optional[int] = None):
        if limit is None:
            limit = get_config().max_order
        self._limit = validate_order(limit, "limit")
        self._max_order = -1
        self._forward: Dict[BasisType, List[np.ndarray]] = {basis: [] for basis in BLOCK_BUILDERS}
        self._inverse: Dict[BasisType, List[np.ndarray]] = {basis: [] for basis in BLOCK_BUILDERS}
        self._lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self.stats = ConversionCacheStats()

    @property
    def max_order(self) -> int:
        """Highest order currently cached (-1 when empty)."""
        return self._max_order

    @property
    def limit(self) -> int:
        return self._limit

    def set_limit(self, limit: int) -> None:
        """Change the highest order the cache will build; cached blocks are kept."""
        limit = validate_order(limit, "limit")
        with self._lock:
            self._limit = limit

    def _record_hit(self) -> None:
        with self._stats_lock:
            self.stats.hits += 1

    def ensure(self, order: int) -> None:
        """Make sure blocks for orders ``0..order`` are cached."""
        order = validate_order(order, max_order=self._limit)
        if order <= self._max_order:
            self._record_hit()
            return
        with self._lock:
            if order <= self._max_order:
                self._record_hit()
                return
            with self._stats_lock:
                self.stats.misses += 1
            with _performance.time_operation(f"conversion blocks {self._max_order + 1}..{order}"):
                for n in range(self._max_order + 1, order + 1):
                    for basis, builder in BLOCK_BUILDERS.items():
                        forward = builder(n)
                        inverse = linalg.inv(forward)
                        forward.flags.writeable = False
                        inverse.flags.writeable = False
                        self._forward[basis].append(forward)
                        self._inverse[basis].append(inverse)
                        with self._stats_lock:
                            self.stats.blocks_built += 2
                    self._max_order = n
            logger.debug(f"Conversion cache extended to order {order}")

    def prewarm(self, order: int) -> "ConversionCache":
        """Fill the cache up to ``order`` before concurrent use."""
        self.ensure(order)
        return self

    def get_block_h2l(self, n: int) -> np.ndarray:
        """Hermite-to-Laguerre block of degree ``n``."""
        self.ensure(n)
        return self._forward[BasisType.LAGUERRE][n]

    def get_block_l2h(self, n: int) -> np.ndarray:
        """Laguerre-to-Hermite block of degree ``n``."""
        self.ensure(n)
        return self._inverse[BasisType.LAGUERRE][n]

    def get_block(self, n: int, input: BasisType, output: BasisType) -> np.ndarray:
        """Block converting degree-``n`` coefficients from ``input`` to ``output``."""
        if input == output:
            return np.identity(n + 1)
        self.ensure(n)
        if input is BasisType.HERMITE:
            return self._forward[output][n]
        if output is BasisType.HERMITE:
            return self._inverse[input][n]
        return self._forward[output][n] @ self._inverse[input][n]

    def clear(self) -> None:
        """Drop every cached block."""
        with self._lock:
            for basis in BLOCK_BUILDERS:
                self._forward[basis] = []
                self._inverse[basis] = []
            self._max_order = -1
            with self._stats_lock:
                self.stats = ConversionCacheStats()

    def __repr__(self) -> str:
        return f"ConversionCache(max_order={self._max_order}, limit={self._limit})"


_default_cache: Optional[ConversionCache] = None
_default_cache_lock = threading.Lock()


def get_conversion_cache() -> ConversionCache:
    """Get the shared conversion cache, creating (and prewarming) it on first use.

    The cache limit follows ``max_order`` of the global configuration.
    """
    global _default_cache
    config = get_config()
    cache = _default_cache
    if cache is None:
        with _default_cache_lock:
            if _default_cache is None:
                _default_cache = ConversionCache(limit=config.max_order)
                if config.prewarm_order is not None:
                    _default_cache.prewarm(config.prewarm_order)
            cache = _default_cache
    if cache.limit != config.max_order:
        cache.set_limit(config.max_order)
    return cache


def reset_conversion_cache() -> None:
    """Discard the shared conversion cache."""
    global _default_cache
    with _default_cache_lock:
        _default_cache = None


class ConversionMatrix:
    """Block-diagonal conversion between two bases at a fixed order.

    Parameters
    ----------
    input : BasisType
        Basis of the vectors being converted
    output : BasisType
        Basis to convert to
    order : int
        Polynomial order of the vectors
    cache : ConversionCache, optional
        Block cache to use (defaults to the shared cache)
    """

    def __init__(self, input: BasisType, output: BasisType, order: int,
                 cache: Optional[ConversionCache] = None):
        self._input = BasisType.parse(input)
        self._output = BasisType.parse(output)
        self._cache = cache if cache is not None else get_conversion_cache()
        self._order = validate_order(order, max_order=self._cache.limit)
        self._cache.ensure(self._order)

    @property
    def order(self) -> int:
        return self._order

    @property
    def input(self) -> BasisType:
        return self._input

    @property
    def output(self) -> BasisType:
        return self._output

    def get_block(self, n: int) -> np.ndarray:
        """Conversion block for degree ``n`` (identity when the bases agree)."""
        if self._input == self._output:
            return np.identity(n + 1)
        return self._cache.get_block(n, self._input, self._output)

    def build_dense_matrix(self) -> np.ndarray:
        """Full ``compute_size(order)`` square block-diagonal matrix."""
        size = compute_size(self._order)
        if self._input == self._output:
            return np.identity(size)
        result = np.zeros((size, size))
        for n in range(self._order + 1):
            offset = compute_offset(n)
            result[offset:offset + n + 1, offset:offset + n + 1] = self.get_block(n)
        return result

    def _check_size(self, array: np.ndarray, method: str) -> None:
        expected = compute_size(self._order)
        if array.ndim != 1 or array.shape[0] != expected:
            raise LengthError(
                f"Array for {method} has incorrect size ({array.size}, should be {expected}).",
                expected=expected, actual=array.size
            )
        if not np.issubdtype(array.dtype, np.floating):
            raise ValidationError(
                f"Array for {method} must have a floating-point dtype, got {array.dtype}",
                field="array", value=str(array.dtype)
            )

    def multiply_on_left(self, array: np.ndarray) -> None:
        """In place, replace each degree segment ``v`` of ``array`` with ``B v``."""
        self._check_size(array, "multiply_on_left")
        if self._input == self._output:
            return
        for n in range(self._order + 1):
            offset = compute_offset(n)
            segment = array[offset:offset + n + 1]
            segment[:] = self.get_block(n) @ segment

    def multiply_on_right(self, array: np.ndarray) -> None:
        """In place, replace each degree segment ``v`` of ``array`` with ``v B``."""
        self._check_size(array, "multiply_on_right")
        if self._input == self._output:
            return
        for n in range(self._order + 1):
            offset = compute_offset(n)
            segment = array[offset:offset + n + 1]
            segment[:] = segment @ self.get_block(n)

    @staticmethod
    def convert_coefficient_vector(array: np.ndarray, input: BasisType, output: BasisType,
                                   order: int, cache: Optional[ConversionCache] = None) -> None:
        """Convert a coefficient vector from ``input`` to ``output`` in place."""
        if BasisType.parse(input) == BasisType.parse(output):
            return
        ConversionMatrix(input, output, order, cache=cache).multiply_on_left(array)

    @staticmethod
    def convert_operation_vector(array: np.ndarray, input: BasisType, output: BasisType,
                                 order: int, cache: Optional[ConversionCache] = None) -> None:
        """Convert a linear functional on coefficient vectors in place.

        If ``w . c`` is a functional of ``input``-basis coefficients ``c``,
        the converted ``w`` gives the same value on the equivalent
        ``output``-basis coefficients.
        """
        if BasisType.parse(input) == BasisType.parse(output):
            return
        ConversionMatrix(output, input, order, cache=cache).multiply_on_right(array)

    def __repr__(self) -> str:
        return (f"ConversionMatrix(input={self._input.name}, output={self._output.name}, "
                f"order={self._order})")
