import logging
import warnings
import numpy as np
import numba
from treefun.exceptions import ResolutionWarning

logger = logging.getLogger(__name__)

################################################################################
# Splitting boxes

# quadrant k sits at (dx, dy) = (k & 1, k >> 1):
#   0 = lower-left, 1 = lower-right, 2 = upper-left, 3 = upper-right
QUADRANT_DX = np.array([0, 1, 0, 1], dtype=np.uint64)
QUADRANT_DY = np.array([0, 0, 1, 1], dtype=np.uint64)

def child_domains(dom):
    """
    The four quadrants of dom = [xmin, xmax, ymin, ymax], in quadrant order
    """
    xmin, xmax, ymin, ymax = dom
    xmid = 0.5*(xmin + xmax)
    ymid = 0.5*(ymin + ymax)
    return np.array([
        [xmin, xmid, ymin, ymid],
        [xmid, xmax, ymin, ymid],
        [xmin, xmid, ymid, ymax],
        [xmid, xmax, ymid, ymax],
    ])

def refine_box(tree, id):
    """
    Append four children to box id (which must be a leaf) and return their ids

    The children are leaves without coefficients; the coefficients of id are
    dropped, as only leaves carry them.
    """
    first = tree._grow(4)
    ids = np.arange(first, first+4)
    tree._domain[ids] = child_domains(tree._domain[id])
    tree._level[ids] = tree._level[id] + 1
    tree._height[ids] = 0
    tree._parent[ids] = id
    tree._children[ids] = 0
    tree._col[ids] = np.uint64(2)*tree._col[id] + QUADRANT_DX
    tree._row[ids] = np.uint64(2)*tree._row[id] + QUADRANT_DY
    tree._children[id] = ids
    tree._set_coeffs(id, None)
    return ids

################################################################################
# Breadth-first adaptive construction

def build_breadth_first(tree, func, tol, oracle, max_level, start=1, max_boxes=None):
    """
    Resolve every box from id start onwards, splitting boxes that fail the test

    The store grows while we walk it: children are appended behind the cursor
    and visited in the same sweep.  Boxes at max_level are accepted with their
    truncated coefficients even when unresolved, and so is every box whose
    split would take the store past max_boxes.

    Inputs:
        tree,      TreeFun, store to refine in place
        func,      callable f(x, y)
        tol,       f8,  resolution tolerance
        oracle,    ResolutionOracle
        max_level, int, deepest level allowed
        start,     int, first id to process
        max_boxes, int, box budget (no budget if None)
    Outputs:
        unresolved, list of leaf ids accepted without meeting tol
    """
    if max_boxes is None:
        max_boxes = np.inf
    unresolved = []
    id = start
    while id <= len(tree):
        resolved, coeffs = oracle(func, tree._domain[id], tree.n, tol)
        if resolved or tree._level[id] >= max_level or len(tree) + 4 > max_boxes:
            tree._set_coeffs(id, coeffs)
            tree._height[id] = 0
            if not resolved:
                unresolved.append(id)
        else:
            refine_box(tree, id)
            tree._height[id] = 1
        id += 1
    logger.debug('Refinement sweep from id %d finished with %d boxes.', start, len(tree))
    if unresolved:
        deepest = tree._level[unresolved].max()
        msg = '{} box(es) did not resolve to tol={:.1e} (deepest at level {}, max_level={}, {} boxes, max_boxes={}); keeping the truncated approximation.'.format(
            len(unresolved), tol, deepest, max_level, len(tree), max_boxes)
        logger.warning(msg)
        warnings.warn(msg, ResolutionWarning, stacklevel=2)
    compute_heights(tree._children, tree._height, len(tree))
    return unresolved

################################################################################
# Heights

@numba.njit
def compute_heights(children, height, nboxes):
    """
    Set height = 0 on leaves and 1 + max(child heights) elsewhere

    Children are always created after their parent, so a single sweep over
    ids from last to first sees every child before its parent.
    """
    for k in range(nboxes, 0, -1):
        if children[k, 0] == 0:
            height[k] = 0
        else:
            h = 0
            for j in range(4):
                hc = height[children[k, j]]
                if hc > h:
                    h = hc
            height[k] = 1 + h
