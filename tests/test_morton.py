import numpy as np

from treefun.morton import cartesian2morton, morton2cartesian, ancestor_morton, box_keys


def test_known_codes():
    assert cartesian2morton(0, 0) == 0
    assert cartesian2morton(1, 0) == 1
    assert cartesian2morton(0, 1) == 2
    assert cartesian2morton(1, 1) == 3
    assert cartesian2morton(2, 0) == 4
    assert cartesian2morton(3, 5) == 0b100111
    assert cartesian2morton(2**32 - 1, 2**32 - 1) == np.uint64(2**64 - 1)


def test_vectorized_and_dtype():
    col = np.array([0, 1, 2, 3], dtype=np.uint64)
    row = np.array([3, 2, 1, 0], dtype=np.uint64)
    m = cartesian2morton(col, row)
    assert m.dtype == np.uint64
    assert m.tolist() == [10, 9, 6, 5]


def test_decode_inverts_encode():
    rng = np.random.default_rng(2)
    col = rng.integers(0, 2**32, size=1000, dtype=np.uint64)
    row = rng.integers(0, 2**32, size=1000, dtype=np.uint64)
    c, r = morton2cartesian(cartesian2morton(col, row))
    assert np.array_equal(c, col)
    assert np.array_equal(r, row)
    c, r = morton2cartesian(cartesian2morton(5, 9))
    assert (c, r) == (5, 9)


def test_ancestor_is_truncation():
    rng = np.random.default_rng(3)
    col = rng.integers(0, 2**20, size=200, dtype=np.uint64)
    row = rng.integers(0, 2**20, size=200, dtype=np.uint64)
    m = cartesian2morton(col, row)
    for k in range(0, 6):
        parent = cartesian2morton(col >> np.uint64(k), row >> np.uint64(k))
        assert np.array_equal(ancestor_morton(m, k), parent)


def test_child_digit_is_quadrant():
    parent = cartesian2morton(5, 6)
    for k, (dx, dy) in enumerate([(0, 0), (1, 0), (0, 1), (1, 1)]):
        child = cartesian2morton(2*5 + dx, 2*6 + dy)
        assert child == 4*parent + k


def test_box_keys_are_unique_across_levels():
    keys = []
    for level in range(4):
        size = 2**level
        c, r = np.meshgrid(np.arange(size), np.arange(size))
        m = cartesian2morton(c.ravel(), r.ravel())
        keys.append(box_keys(m, np.full(m.size, level)))
    keys = np.concatenate(keys)
    assert np.unique(keys).size == keys.size
    assert box_keys(0, 0) == 1
