import logging
import numpy as np
from treefun.exceptions import BalanceError
from treefun.neighbors import find_flat_neighbors
from treefun.options import MAX_LEVEL, MORTON_MAX_LEVEL
from treefun.refine import refine_box, build_breadth_first, compute_heights
from treefun.transforms import chebpts2, vals2coeffs

logger = logging.getLogger(__name__)

def restrict_coeffs(coeffs, dom, child_dom):
    """
    Coefficients on child_dom of the polynomial with coefficients coeffs on dom

    The restriction of a degree (n-1) polynomial is again of degree (n-1), so
    interpolating it on the child's n x n grid is exact up to round-off.
    """
    n = coeffs.shape[0]
    xx, yy = chebpts2(n, n, child_dom)
    xt = 2.0*(xx - dom[0])/(dom[1] - dom[0]) - 1.0
    yt = 2.0*(yy - dom[2])/(dom[3] - dom[2]) - 1.0
    # coeffs[i, j] multiplies T_i(y) T_j(x)
    vals = np.polynomial.chebyshev.chebval2d(yt, xt, coeffs)
    return vals2coeffs(vals)

def find_coarse_neighbors(tree):
    """
    Leaves that are at least two levels coarser than some adjacent leaf
    """
    leaves = tree.leaves()
    flat = find_flat_neighbors(tree, leaves)
    level = tree.level[leaves][:, None]
    coarse = (flat > 0) & (tree.level[flat] <= level - 2)
    return np.unique(flat[coarse])

def balance(tree, func=None, oracle=None, tol=None, max_level=MAX_LEVEL, max_iterations=None, max_boxes=None):
    """
    Enforce the 2:1 level restriction in place

    Every leaf with a neighbor two or more levels finer is split, until no such
    leaf remains.  New children are resolved from func when it is given (and
    may refine further, up to max_level and within max_boxes); otherwise they
    inherit the exact restriction of their parent's polynomial.  Scheduled
    boxes are always split, so the level restriction holds even when the box
    budget is spent.

    Inputs:
        tree,           TreeFun
        func,           callable f(x, y) or None
        oracle,         ResolutionOracle, required with func
        tol,            f8, required with func
        max_level,      int, deepest level for adaptive refinement
        max_iterations, int, cap on the number of sweeps
        max_boxes,      int, box budget for adaptive refinement (None = no budget)
    Outputs:
        unresolved, list of new leaf ids accepted without meeting tol
    """
    if max_iterations is None:
        # each sweep settles at least one level of a store at most this deep
        max_iterations = MORTON_MAX_LEVEL + 1
    unresolved = []
    for sweep in range(max_iterations):
        targets = find_coarse_neighbors(tree)
        if targets.size == 0:
            logger.debug('Balanced after %d sweep(s), %d boxes.', sweep, len(tree))
            return unresolved
        logger.debug('Balance sweep %d: refining %d box(es).', sweep, targets.size)
        first = len(tree) + 1
        for id in targets:
            if func is None:
                coeffs = tree._coeffs[id]
                for child in refine_box(tree, id):
                    tree._set_coeffs(child, restrict_coeffs(coeffs, tree._domain[id], tree._domain[child]))
            else:
                refine_box(tree, id)
        if func is None:
            compute_heights(tree._children, tree._height, len(tree))
        else:
            unresolved.extend(build_breadth_first(tree, func, tol, oracle, max_level, start=first, max_boxes=max_boxes))
    raise BalanceError('Level restriction did not converge in {} sweeps.'.format(max_iterations))
