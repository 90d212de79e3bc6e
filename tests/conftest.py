import logging
import numpy as np
import pytest

from treefun.tree import TreeFun
from treefun.refine import refine_box, compute_heights


def pytest_configure(config):
    """Set up logging before tests run."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def sharp(x, y):
    return np.tanh(20*x)*np.tanh(20*y)


def smooth(x, y):
    return np.exp(x)*np.sin(2*y)


def peak(x, y):
    return np.exp(-2000*((x - 0.3)**2 + (y - 0.2)**2))


def constant_coeffs(n, value=1.0):
    c = np.zeros((n, n))
    c[0, 0] = value
    return c


def manual_tree(splits, n=4, domain=(-1.0, 1.0, -1.0, 1.0)):
    """
    Build a store by hand: split the boxes listed in splits (in order) and
    give every leaf a constant polynomial. No balancing or neighbors.
    """
    tree = TreeFun(n)
    tree._add_root(np.array(domain, dtype=float))
    for id in splits:
        refine_box(tree, id)
    for id in tree.leaves():
        tree._set_coeffs(id, constant_coeffs(n))
    compute_heights(tree._children, tree._height, len(tree))
    return tree


@pytest.fixture(scope="session")
def sharp_tree():
    return TreeFun.from_function(sharp, options={"tol": 1e-6})


@pytest.fixture(scope="session")
def sharp_tree_unbalanced():
    return TreeFun.from_function(sharp, options={"tol": 1e-6, "balance": False})


@pytest.fixture(scope="session")
def smooth_tree():
    return TreeFun.from_function(smooth, domain=(0, 2, -1, 1), n=12)


def leaf_containing(tree, x, y):
    for id in tree.leaves():
        d = tree.domain[id]
        if d[0] <= x <= d[1] and d[2] <= y <= d[3]:
            return id
    return 0


def level_jumps(tree):
    worst = 0
    for id in tree.leaves():
        for side in tree.leaf_neighbors[id]:
            for nbr in side:
                worst = max(worst, abs(int(tree.level[id]) - int(tree.level[nbr])))
    return worst
