import math
import threading

import numpy as np
import pytest

from lensing_shapelets.core.base.exceptions import LengthError, ValidationError
from lensing_shapelets.core.config.settings import update_config
from lensing_shapelets.shapelets.constants import HERMITE, LAGUERRE, compute_size, compute_offset
from lensing_shapelets.shapelets.conversion import (
    ConversionCache,
    ConversionMatrix,
    get_conversion_cache,
    reset_conversion_cache,
    make_block_h2l,
)
from lensing_shapelets.shapelets.hermite import HermiteEvaluator


@pytest.fixture
def cache():
    return ConversionCache(limit=10)


class TestBlocks:
    def test_order_zero(self):
        np.testing.assert_allclose(make_block_h2l(0), [[1.0]])

    def test_order_one(self):
        s = math.sqrt(0.5)
        np.testing.assert_allclose(make_block_h2l(1), [[0.0, s], [-s, 0.0]], atol=1e-15)

    def test_order_two(self):
        s = math.sqrt(0.5)
        expected = [[-0.5, 0.0, 0.5], [0.0, -s, 0.0], [s, 0.0, s]]
        np.testing.assert_allclose(make_block_h2l(2), expected, atol=1e-15)

    @pytest.mark.parametrize("n", range(0, 9))
    def test_rows_orthogonal(self, n):
        block = make_block_h2l(n)
        gram = block @ block.T
        np.testing.assert_allclose(gram, np.diag(np.diag(gram)), atol=1e-12)

    def test_inverse_blocks(self, cache):
        for n in range(8):
            product = cache.get_block_l2h(n) @ cache.get_block_h2l(n)
            np.testing.assert_allclose(product, np.identity(n + 1), atol=1e-12)


class TestConversionCache:
    def test_starts_empty(self, cache):
        assert cache.max_order == -1
        assert cache.limit == 10

    def test_grows_on_demand(self, cache):
        cache.ensure(3)
        assert cache.max_order == 3
        assert cache.stats.misses == 1
        assert cache.stats.blocks_built == 8
        cache.ensure(2)
        assert cache.stats.hits == 1
        assert cache.max_order == 3

    def test_blocks_not_rebuilt(self, cache):
        first = cache.get_block_h2l(2)
        cache.ensure(6)
        assert cache.get_block_h2l(2) is first

    def test_blocks_read_only(self, cache):
        with pytest.raises(ValueError):
            cache.get_block_h2l(1)[0, 0] = 2.0

    def test_limit(self, cache):
        with pytest.raises(ValidationError):
            cache.ensure(11)

    def test_prewarm_and_clear(self, cache):
        assert cache.prewarm(5) is cache
        assert cache.max_order == 5
        cache.clear()
        assert cache.max_order == -1
        assert cache.stats.blocks_built == 0

    def test_get_block(self, cache):
        np.testing.assert_array_equal(cache.get_block(2, HERMITE, HERMITE), np.identity(3))
        assert cache.get_block(2, HERMITE, LAGUERRE) is cache.get_block_h2l(2)
        assert cache.get_block(2, LAGUERRE, HERMITE) is cache.get_block_l2h(2)

    def test_hit_rate(self, cache):
        assert cache.stats.hit_rate == 0.0
        cache.ensure(2)
        cache.ensure(1)
        assert cache.stats.hit_rate == pytest.approx(0.5)

    def test_concurrent_growth(self, cache):
        errors = []

        def worker(order):
            try:
                cache.ensure(order)
                cache.get_block_l2h(order)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(o,)) for o in (3, 7, 5, 7, 1, 10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert errors == []
        assert cache.max_order == 10
        assert cache.stats.blocks_built == 22

    def test_concurrent_hit_counting(self, cache):
        cache.ensure(3)

        def worker():
            for _ in range(200):
                cache.ensure(2)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert cache.stats.hits == 1600
        assert cache.stats.misses == 1

    def test_set_limit(self, cache):
        cache.ensure(4)
        cache.set_limit(2)
        assert cache.limit == 2
        with pytest.raises(ValidationError):
            cache.ensure(3)
        cache.set_limit(12)
        cache.ensure(12)
        assert cache.max_order == 12
        with pytest.raises(ValidationError):
            cache.set_limit(-1)


class TestSharedCache:
    def test_singleton(self):
        assert get_conversion_cache() is get_conversion_cache()

    def test_uses_config(self):
        update_config(max_order=12, prewarm_order=4)
        reset_conversion_cache()
        shared = get_conversion_cache()
        assert shared.limit == 12
        assert shared.max_order == 4

    def test_limit_follows_config(self):
        shared = get_conversion_cache()
        update_config(max_order=40)
        assert get_conversion_cache() is shared
        assert shared.limit == 40
        ConversionMatrix(HERMITE, LAGUERRE, 35)


class TestConversionMatrix:
    def test_round_trip(self, cache, rng):
        order = 6
        original = rng.normal(size=compute_size(order))
        array = original.copy()
        ConversionMatrix.convert_coefficient_vector(array, HERMITE, LAGUERRE, order, cache=cache)
        assert not np.allclose(array, original)
        ConversionMatrix.convert_coefficient_vector(array, LAGUERRE, HERMITE, order, cache=cache)
        np.testing.assert_allclose(array, original, atol=1e-12)

    def test_same_basis_is_identity(self, cache, rng):
        array = rng.normal(size=compute_size(4))
        expected = array.copy()
        ConversionMatrix.convert_coefficient_vector(array, LAGUERRE, LAGUERRE, 4, cache=cache)
        np.testing.assert_array_equal(array, expected)
        dense = ConversionMatrix(HERMITE, HERMITE, 4, cache=cache).build_dense_matrix()
        np.testing.assert_array_equal(dense, np.identity(compute_size(4)))

    @pytest.mark.parametrize("basis", [HERMITE, LAGUERRE])
    def test_identity_multiply_leaves_vector(self, cache, rng, basis):
        matrix = ConversionMatrix(basis, basis, 3, cache=cache)
        vector = rng.normal(size=compute_size(3))
        expected = vector.copy()
        matrix.multiply_on_left(vector)
        matrix.multiply_on_right(vector)
        np.testing.assert_array_equal(vector, expected)
        np.testing.assert_array_equal(matrix.get_block(2), np.identity(3))

    def test_dense_matrix_matches_multiply(self, cache, rng):
        order = 5
        matrix = ConversionMatrix(HERMITE, LAGUERRE, order, cache=cache)
        vector = rng.normal(size=compute_size(order))
        dense = matrix.build_dense_matrix()
        left = vector.copy()
        matrix.multiply_on_left(left)
        np.testing.assert_allclose(left, dense @ vector, atol=1e-12)
        right = vector.copy()
        matrix.multiply_on_right(right)
        np.testing.assert_allclose(right, vector @ dense, atol=1e-12)

    def test_dense_matrix_is_block_diagonal(self, cache):
        dense = ConversionMatrix(LAGUERRE, HERMITE, 3, cache=cache).build_dense_matrix()
        for n in range(4):
            o = compute_offset(n)
            np.testing.assert_array_equal(dense[o:o + n + 1, o:o + n + 1], cache.get_block_l2h(n))
        assert dense[0, 1] == 0.0
        assert dense[compute_offset(3), compute_offset(2)] == 0.0

    def test_incorrect_size(self, cache):
        matrix = ConversionMatrix(HERMITE, LAGUERRE, 2, cache=cache)
        with pytest.raises(LengthError) as excinfo:
            matrix.multiply_on_left(np.zeros(5))
        assert "Array for multiply_on_left has incorrect size (5, should be 6)." in str(excinfo.value)
        with pytest.raises(LengthError):
            matrix.multiply_on_right(np.zeros(7))

    def test_integer_array_rejected(self, cache):
        array = np.array([1, 1, 0])
        with pytest.raises(ValidationError):
            ConversionMatrix.convert_coefficient_vector(array, HERMITE, LAGUERRE, 1, cache=cache)
        with pytest.raises(ValidationError):
            ConversionMatrix(HERMITE, LAGUERRE, 1, cache=cache).multiply_on_right(array)
        np.testing.assert_array_equal(array, [1, 1, 0])

        converted = array.astype(np.float64)
        ConversionMatrix.convert_coefficient_vector(converted, HERMITE, LAGUERRE, 1, cache=cache)
        np.testing.assert_allclose(converted, [1.0, 0.0, -np.sqrt(0.5)], atol=1e-12)

    def test_order_above_limit(self, cache):
        with pytest.raises(ValidationError):
            ConversionMatrix(HERMITE, LAGUERRE, 11, cache=cache)

    def test_accepts_basis_names(self, cache):
        matrix = ConversionMatrix("hermite", "laguerre", 1, cache=cache)
        assert matrix.input is HERMITE
        assert matrix.output is LAGUERRE

    def test_operation_vector_duality(self, cache, rng):
        order = 4
        coefficients = rng.normal(size=compute_size(order))
        functional = rng.normal(size=compute_size(order))
        value = functional @ coefficients

        converted = coefficients.copy()
        ConversionMatrix.convert_coefficient_vector(converted, HERMITE, LAGUERRE, order, cache=cache)
        converted_functional = functional.copy()
        ConversionMatrix.convert_operation_vector(converted_functional, HERMITE, LAGUERRE, order, cache=cache)
        assert converted_functional @ converted == pytest.approx(value)

    def test_flux_functional_in_laguerre_basis(self, cache, rng):
        order = 4
        h = HermiteEvaluator(order)
        coefficients = rng.normal(size=h.size)
        flux = h.sum_integration(coefficients)
        laguerre = coefficients.copy()
        ConversionMatrix.convert_coefficient_vector(laguerre, HERMITE, LAGUERRE, order, cache=cache)
        integration = h.fill_integration()
        ConversionMatrix.convert_operation_vector(integration, HERMITE, LAGUERRE, order, cache=cache)
        assert integration @ laguerre == pytest.approx(flux)

    @pytest.mark.parametrize("n", [2, 4, 6])
    def test_zero_azimuthal_index_is_rotation_invariant(self, cache, n):
        # The last row of an even-degree block is the m = 0 component.
        laguerre = np.zeros(compute_size(n))
        laguerre[compute_offset(n) + n] = 1.0
        ConversionMatrix.convert_coefficient_vector(laguerre, LAGUERRE, HERMITE, n, cache=cache)
        h = HermiteEvaluator(n)
        angles = np.linspace(0.0, 2.0 * np.pi, 7)
        values = h.sum_evaluation(laguerre, 0.8 * np.cos(angles), 0.8 * np.sin(angles))
        np.testing.assert_allclose(values, values[0], atol=1e-12)
