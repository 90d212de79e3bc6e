import numpy as np
from treefun.morton import cartesian2morton, box_keys

"""
Neighbor search on the node store

Sides are numbered 0 = left, 1 = right, 2 = down, 3 = up.  For a box at level
L with address (col, row) the same-level cell across each side is found by
moving one step in col or row; the box actually sitting there is the deepest
existing box containing that cell, found by stripping Morton bit pairs until
the (level, code) key exists in the tree.
"""

SIDES = ((-1, 0), (1, 0), (0, -1), (0, 1))
OPPOSITE = (1, 0, 3, 2)
# children of a box that touch its left, right, lower, upper face,
# in increasing coordinate along the face
FACE_CHILDREN = ((0, 2), (1, 3), (0, 1), (2, 3))

def _sorted_keys(tree):
    morton = cartesian2morton(tree.col[1:], tree.row[1:])
    keys = box_keys(morton, tree.level[1:])
    order = np.argsort(keys)
    return keys[order], order + 1

def find_flat_neighbors(tree, ids=None):
    """
    Deepest box at the same or a coarser level across each side of each box

    Inputs:
        tree, TreeFun
        ids,  i8[m], boxes to query (all boxes if None)
    Outputs:
        flat, i8[m, 4], neighbor ids per side (0 = side lies on the domain boundary)
    """
    if ids is None:
        ids = np.arange(1, len(tree)+1)
    ids = np.asarray(ids, dtype=np.int64)
    sorted_keys, sorted_ids = _sorted_keys(tree)
    level = tree.level[ids]
    col = tree.col[ids].astype(np.int64)
    row = tree.row[ids].astype(np.int64)
    size = np.left_shift(np.int64(1), level)
    flat = np.zeros((ids.size, 4), dtype=np.int64)
    for side, (dc, dr) in enumerate(SIDES):
        c = col + dc
        r = row + dr
        inside = (c >= 0) & (c < size) & (r >= 0) & (r < size)
        where = np.where(inside)[0]
        code = cartesian2morton(c[where], r[where])
        lev = level[where]
        # walk up; the root (key 1) always exists, so this terminates
        while where.size > 0:
            keys = box_keys(code, lev)
            pos = np.minimum(np.searchsorted(sorted_keys, keys), sorted_keys.size-1)
            hit = sorted_keys[pos] == keys
            flat[where[hit], side] = sorted_ids[pos[hit]]
            miss = ~hit
            where = where[miss]
            code = code[miss] >> np.uint64(2)
            lev = lev[miss] - 1
    return flat

def _leaves_on_face(tree, id, face, out):
    if tree.children[id, 0] == 0:
        out.append(int(id))
    else:
        for k in FACE_CHILDREN[face]:
            _leaves_on_face(tree, tree.children[id, k], face, out)
    return out

def generate_neighbors(tree):
    """
    Flat neighbors of every box and leaf neighbors of every leaf

    Outputs:
        flat_neighbors, i8[N+1, 4], indexed by id (row 0 is unused)
        leaf_neighbors, list of length N+1; entry id is None for internal boxes,
                        otherwise a 4-tuple (one per side) of tuples of leaf ids
                        sharing that face, ordered along the face
    """
    N = len(tree)
    flat_neighbors = np.zeros((N+1, 4), dtype=np.int64)
    flat_neighbors[1:] = find_flat_neighbors(tree)
    leaf_neighbors = [None]*(N+1)
    for id in tree.leaves():
        sides = []
        for side in range(4):
            nbr = flat_neighbors[id, side]
            if nbr == 0:
                sides.append(())
            else:
                # we want the face of nbr looking back at id
                sides.append(tuple(_leaves_on_face(tree, nbr, OPPOSITE[side], [])))
        leaf_neighbors[id] = tuple(sides)
    return flat_neighbors, leaf_neighbors
