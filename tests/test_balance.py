import numpy as np
import pytest

from treefun.balance import balance, find_coarse_neighbors, restrict_coeffs
from treefun.exceptions import BalanceError
from treefun.neighbors import generate_neighbors
from treefun.resolution import ResolutionOracle
from treefun.transforms import chebpts2, vals2coeffs
from treefun.tree import TreeFun

from conftest import manual_tree, level_jumps, peak


def unbalanced_tree():
    # box 13 (level 3) touches boxes 3 and 4 (level 1)
    return manual_tree([1, 2, 9])


def test_detects_coarse_neighbors():
    tree = unbalanced_tree()
    assert find_coarse_neighbors(tree).tolist() == [3, 4]


def test_balance_without_function():
    tree = unbalanced_tree()
    assert balance(tree) == []
    assert len(tree) == 21
    assert not tree.is_leaf(3) and not tree.is_leaf(4)
    assert tree.coeffs[3] is None and tree.coeffs[4] is None
    assert tree.height[1] == 3
    assert find_coarse_neighbors(tree).size == 0
    # constant polynomials restrict to constants
    for id in range(14, 22):
        c = tree.coeffs[id]
        assert abs(c[0, 0] - 1.0) < 1e-14
        c = c.copy()
        c[0, 0] = 0
        assert np.abs(c).max() < 1e-14
    tree._finalize(True)
    assert level_jumps(tree) <= 1


def test_balance_with_function_resolves_new_children():
    tree = unbalanced_tree()
    f = lambda x, y: x*y + 2*y
    oracle = ResolutionOracle()
    balance(tree, f, oracle, 1e-12)
    assert find_coarse_neighbors(tree).size == 0
    for id in range(14, len(tree)+1):
        if tree.is_leaf(id):
            assert np.array_equal(tree.coeffs[id], oracle(f, tree.domain[id], tree.n, 1e-12)[1])


def test_balance_ripples():
    # a deep box at the centre forces several sweeps
    tree = manual_tree([1, 2, 9, 13, 17])
    balance(tree)
    assert find_coarse_neighbors(tree).size == 0
    tree._finalize(True)
    assert level_jumps(tree) <= 1


def test_balance_iteration_cap():
    tree = manual_tree([1, 2, 9, 13, 17])
    with pytest.raises(BalanceError):
        balance(tree, max_iterations=1)


def test_already_balanced_tree_is_untouched():
    tree = manual_tree([1, 2, 3, 4, 5])
    balance(tree)
    assert len(tree) == 21


def test_restrict_coeffs_is_exact():
    rng = np.random.default_rng(4)
    n = 7
    coeffs = rng.standard_normal((n, n))
    dom = np.array([-1.0, 3.0, 0.0, 2.0])
    child = np.array([1.0, 3.0, 1.0, 2.0])
    out = restrict_coeffs(coeffs, dom, child)
    xx, yy = chebpts2(n, n, child)
    xt = 2*(xx - dom[0])/(dom[1] - dom[0]) - 1
    yt = 2*(yy - dom[2])/(dom[3] - dom[2]) - 1
    expected = vals2coeffs(np.polynomial.chebyshev.chebval2d(yt, xt, coeffs))
    assert np.allclose(out, expected, atol=1e-13)
    # evaluate both expansions at a point of the child box
    x, y = 2.3, 1.7
    v_parent = np.polynomial.chebyshev.chebval2d(2*(y - 0)/2 - 1, 2*(x + 1)/4 - 1, coeffs)
    v_child = np.polynomial.chebyshev.chebval2d(2*(y - 1)/1 - 1, 2*(x - 1)/2 - 1, out)
    assert abs(v_parent - v_child) < 1e-11


def test_sharp_tree_is_balanced(sharp_tree, sharp_tree_unbalanced):
    assert level_jumps(sharp_tree) <= 1
    assert len(sharp_tree) >= len(sharp_tree_unbalanced)
    assert find_coarse_neighbors(sharp_tree).size == 0


def test_localized_peak_needs_balancing():
    unbalanced = TreeFun.from_function(peak, options={'tol': 1e-8, 'balance': False})
    assert level_jumps(unbalanced) > 1
    assert find_coarse_neighbors(unbalanced).size > 0
    balanced = TreeFun.from_function(peak, options={'tol': 1e-8})
    assert level_jumps(balanced) <= 1
    assert find_coarse_neighbors(balanced).size == 0
    assert len(balanced) > len(unbalanced)
    assert balanced.unresolved == []
    flat, leaf = generate_neighbors(balanced)
    assert np.array_equal(flat, balanced.flat_neighbors)
    rng = np.random.default_rng(7)
    x = rng.uniform(-1, 1, 1000)
    y = rng.uniform(-1, 1, 1000)
    assert np.abs(balanced(x, y) - peak(x, y)).max() < 1e-6


def test_deep_chain_balances_within_default_sweeps():
    # twelve levels stacked at the centre of the lower-left quadrant
    splits = [1, 2] + [9 + 4*k for k in range(10)]
    tree = manual_tree(splits)
    assert tree.level.max() == 12
    with pytest.raises(BalanceError):
        balance(manual_tree(splits), max_iterations=2)
    balance(tree)
    assert find_coarse_neighbors(tree).size == 0
    tree._finalize(True)
    assert level_jumps(tree) <= 1
