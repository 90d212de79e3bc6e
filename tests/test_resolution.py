import numpy as np
import pytest

from treefun.exceptions import ConfigurationError
from treefun.resolution import ResolutionOracle
from treefun.transforms import chebpts2, vals2coeffs

from conftest import sharp


def test_constant_is_resolved():
    resolved, coeffs = ResolutionOracle()(lambda x, y: 1.0 + 0*x, np.array([-1, 1, -1, 1.0]), 16, 1e-12)
    assert resolved
    assert coeffs.shape == (16, 16)
    assert abs(coeffs[0, 0] - 1.0) < 1e-14
    coeffs[0, 0] = 0.0
    assert np.abs(coeffs).max() < 1e-14


def test_low_degree_polynomial_is_resolved_anywhere():
    f = lambda x, y: 3*x**3*y - y**2 + 2
    oracle = ResolutionOracle()
    for dom in ([-1, 1, -1, 1], [10, 11, -3, 5], [0, 1e-3, 0, 1e-3]):
        resolved, _ = oracle(f, np.array(dom, dtype=float), 8, 1e-12)
        assert resolved


def test_sharp_feature_is_not_resolved_on_root():
    resolved, coeffs = ResolutionOracle()(sharp, np.array([-1, 1, -1, 1.0]), 16, 1e-6)
    assert not resolved
    assert coeffs.shape == (16, 16)


def test_tolerance_is_relative_to_magnitude():
    f = lambda x, y: 1e8*np.exp(x + y)
    oracle = ResolutionOracle()
    dom = np.array([-1, 1, -1, 1.0])
    resolved, _ = oracle(f, dom, 16, 1e-12)
    assert resolved
    # a tiny function is measured against 1, not its own size
    resolved, _ = oracle(lambda x, y: 1e-14*np.tanh(50*x) + 0*y, dom, 16, 1e-12)
    assert resolved


def test_determinism():
    oracle = ResolutionOracle()
    dom = np.array([0.0, 0.5, -0.5, 0.0])
    r1, c1 = oracle(sharp, dom, 12, 1e-8)
    r2, c2 = oracle(sharp, dom, 12, 1e-8)
    r3, c3 = ResolutionOracle()(sharp, dom, 12, 1e-8)
    assert r1 == r2 == r3
    assert np.array_equal(c1, c2)
    assert np.array_equal(c1, c3)


def test_grids_are_memoized_per_degree():
    oracle = ResolutionOracle()
    g8 = oracle.grid(8)
    assert oracle.grid(8) is g8
    g6 = oracle.grid(6)
    assert g6[0][0].shape == (12, 12)
    assert g6[1][0].shape == (6, 6)
    assert oracle.grid(8) is g8


def test_sample_interpolates_on_native_grid():
    f = lambda x, y: np.cos(x)*y
    dom = np.array([1.0, 2.0, 0.0, 3.0])
    coeffs = ResolutionOracle().sample(f, dom, 10)
    xx, yy = chebpts2(10, 10, dom)
    assert np.allclose(coeffs, vals2coeffs(f(xx, yy)), atol=1e-13)


def test_scalar_output_is_broadcast():
    resolved, coeffs = ResolutionOracle()(lambda x, y: 2.0, np.array([-1, 1, -1, 1.0]), 4, 1e-12)
    assert resolved
    assert abs(coeffs[0, 0] - 2.0) < 1e-14


def test_wrong_output_shape_raises():
    with pytest.raises(ConfigurationError):
        ResolutionOracle()(lambda x, y: np.ones(3), np.array([-1, 1, -1, 1.0]), 4, 1e-12)
