import math

import numpy as np
import pytest

from lensing_shapelets.core.base.ellipses import (
    LinearTransform,
    AffineTransform,
    EllipseCore,
    Ellipse,
)
from lensing_shapelets.core.base.exceptions import GeometryError


class TestLinearTransform:
    def test_default_is_identity(self):
        np.testing.assert_array_equal(LinearTransform().matrix, np.identity(2))

    def test_invert(self):
        t = LinearTransform([[2.0, 1.0], [0.5, 3.0]])
        product = (t @ t.invert()).matrix
        np.testing.assert_allclose(product, np.identity(2), atol=1e-14)

    def test_singular(self):
        with pytest.raises(GeometryError):
            LinearTransform([[1.0, 2.0], [2.0, 4.0]]).invert()

    def test_wrong_shape(self):
        with pytest.raises(GeometryError):
            LinearTransform(np.zeros((3, 3)))

    def test_call_on_arrays(self):
        t = LinearTransform([[1.0, 2.0], [3.0, 4.0]])
        u, v = t(np.array([1.0, 0.0]), np.array([0.0, 1.0]))
        np.testing.assert_array_equal(u, [1.0, 2.0])
        np.testing.assert_array_equal(v, [3.0, 4.0])


class TestAffineTransform:
    def test_invert_round_trip(self):
        t = AffineTransform(LinearTransform([[2.0, 0.3], [-0.1, 0.7]]), [1.5, -2.0])
        x, y = 0.4, -1.2
        u, v = t(x, y)
        x2, y2 = t.invert()(u, v)
        assert x2 == pytest.approx(x)
        assert y2 == pytest.approx(y)

    def test_determinant(self):
        t = AffineTransform(LinearTransform([[2.0, 0.0], [0.0, 3.0]]), [5.0, 5.0])
        assert t.compute_determinant() == pytest.approx(6.0)


class TestEllipseCore:
    def test_from_axes_round_trip(self):
        core = EllipseCore.from_axes(3.0, 1.5, 0.4)
        a, b, theta = core.get_axes()
        assert a == pytest.approx(3.0)
        assert b == pytest.approx(1.5)
        assert theta == pytest.approx(0.4)

    def test_from_radius(self):
        core = EllipseCore.from_radius(2.0)
        assert core.ixx == pytest.approx(4.0)
        assert core.iyy == pytest.approx(4.0)
        assert core.ixy == pytest.approx(0.0)
        assert core.get_determinant_radius() == pytest.approx(2.0)
        assert core.get_area() == pytest.approx(4.0 * math.pi)

    @pytest.mark.parametrize("moments", [(0.0, 1.0, 0.0), (1.0, 1.0, 1.0), (-1.0, 2.0, 0.0)])
    def test_not_positive_definite(self, moments):
        with pytest.raises(GeometryError):
            EllipseCore(*moments)

    def test_from_matrix(self):
        core = EllipseCore.from_matrix([[2.0, 0.5], [0.5, 1.0]])
        np.testing.assert_allclose(core.get_matrix(), [[2.0, 0.5], [0.5, 1.0]])

    def test_from_matrix_unvalidated(self):
        core = EllipseCore.from_matrix([[-2.0, 0.0], [0.0, 1.0]], validate=False)
        np.testing.assert_allclose(core.get_matrix(), [[-2.0, 0.0], [0.0, 1.0]])
        assert not Ellipse(core).copy().core.validate
        with pytest.raises(GeometryError):
            EllipseCore.from_matrix([[-2.0, 0.0], [0.0, 1.0]])
        with pytest.raises(GeometryError):
            core.get_determinant_radius()
        with pytest.raises(GeometryError):
            core.get_grid_transform()

    def test_grid_transform_maps_to_unit_circle(self):
        core = EllipseCore(2.0, 1.0, 0.3)
        l = core.get_grid_transform().matrix
        # L Q L^T = I
        np.testing.assert_allclose(l @ core.get_matrix() @ l.T, np.identity(2), atol=1e-12)

    def test_scale(self):
        core = EllipseCore(2.0, 1.0, 0.3)
        core.scale(2.0)
        np.testing.assert_allclose(core.get_matrix(), 4.0 * np.array([[2.0, 0.3], [0.3, 1.0]]))

    def test_convolve_adds_moments(self):
        result = EllipseCore(2.0, 1.0, 0.3).convolve(EllipseCore(1.0, 3.0, -0.2))
        np.testing.assert_allclose(result.get_matrix(), [[3.0, 0.1], [0.1, 4.0]])


class TestEllipse:
    def test_default(self):
        ellipse = Ellipse()
        np.testing.assert_array_equal(ellipse.center, [0.0, 0.0])
        np.testing.assert_array_equal(ellipse.core.get_matrix(), np.identity(2))

    def test_grid_transform_maps_center_to_origin(self):
        ellipse = Ellipse(EllipseCore(2.0, 1.0, 0.3), [1.0, -2.0])
        u, v = ellipse.get_grid_transform()(1.0, -2.0)
        assert u == pytest.approx(0.0, abs=1e-14)
        assert v == pytest.approx(0.0, abs=1e-14)

    def test_convolve_adds_centers(self):
        result = Ellipse(EllipseCore(), [1.0, 2.0]).convolve(Ellipse(EllipseCore(), [0.5, -1.0]))
        np.testing.assert_allclose(result.center, [1.5, 1.0])
        np.testing.assert_allclose(result.core.get_matrix(), 2.0 * np.identity(2))

    def test_copy_is_deep(self):
        ellipse = Ellipse(EllipseCore(2.0, 1.0, 0.3), [1.0, -2.0])
        duplicate = ellipse.copy()
        duplicate.center[0] = 10.0
        duplicate.core.scale(3.0)
        assert ellipse.center[0] == 1.0
        assert ellipse.core.ixx == 2.0
