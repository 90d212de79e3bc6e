import logging
import numpy as np
from treefun.balance import balance
from treefun.evaluate import locate, evaluate
from treefun.exceptions import ConfigurationError, StructureError
from treefun.morton import cartesian2morton
from treefun.neighbors import generate_neighbors
from treefun.options import DEFAULT_DOMAIN, DEFAULT_N, parse_options, check_domain, check_degree
from treefun.refine import build_breadth_first, compute_heights, child_domains
from treefun.resolution import ResolutionOracle
from treefun.utilities import extend_array, as_function

logger = logging.getLogger(__name__)

################################################################################
# Piecewise polynomial on an adaptive quadtree

class TreeFun:
    """
    Piecewise Chebyshev approximation of f(x, y) on an adaptive quadtree

    The domain is recursively split into four until f is resolved on every
    leaf by a polynomial of degree (n-1) x (n-1).  The tree is stored as
    parallel arrays indexed by box id.  Ids start at 1 (the root) and follow
    creation order, so children always have larger ids than their parent.
    Row 0 of every array is a null box: a parent or child entry of 0 means
    "no box".

    Construct with one of:
        TreeFun.from_function(f, domain, n, options)
        TreeFun.from_template(f, tree)
        TreeFun.from_arrays(domain, level, height, ids, parent, children, coeffs, col, row)

    Attributes (arrays have N+1 rows for N boxes):
        n,              int,        coefficients per direction on each leaf
        domain,         f8[N+1, 4], [xmin, xmax, ymin, ymax]
        level,          i8[N+1],    depth, root = 0
        height,         i8[N+1],    0 for leaves, else 1 + max over children
        parent,         i8[N+1],    0 for the root
        children,       i8[N+1, 4], quadrants (lower-left, lower-right,
                                    upper-left, upper-right), 0 for leaves
        coeffs,         list,       f8[n, n] for leaves, None otherwise;
                                    coeffs[id][i, j] multiplies T_i(y) T_j(x)
        col, row,       u8[N+1],    address of the box at its level
        morton,         u8[N+1],    interleaved (col, row)
        flat_neighbors, i8[N+1, 4], see neighbors.generate_neighbors
        leaf_neighbors, list,       see neighbors.generate_neighbors
        unresolved,     list,       leaves accepted at max_level without meeting tol
    """
    root = 1

    def __init__(self, n=DEFAULT_N, capacity=16):
        self.n = check_degree(n)
        self._nboxes = 0
        capacity = max(int(capacity), 2)
        self._domain = np.zeros((capacity, 4), dtype=float)
        self._level = np.zeros(capacity, dtype=np.int64)
        self._height = np.zeros(capacity, dtype=np.int64)
        self._parent = np.zeros(capacity, dtype=np.int64)
        self._children = np.zeros((capacity, 4), dtype=np.int64)
        self._col = np.zeros(capacity, dtype=np.uint64)
        self._row = np.zeros(capacity, dtype=np.uint64)
        self._coeffs = [None]
        self._packed = None
        self.morton = np.zeros(1, dtype=np.uint64)
        self.flat_neighbors = None
        self.leaf_neighbors = None
        self.unresolved = []

    ############################################################################
    # Constructors

    @classmethod
    def from_function(cls, func, domain=DEFAULT_DOMAIN, n=DEFAULT_N, options=None):
        """
        Adaptively build a TreeFun for func

        Inputs:
            func,    callable f(x, y) returning an array shaped like x, or a scalar
            domain,  [xmin, xmax, ymin, ymax], default [-1, 1, -1, 1]
            n,       int, default 16
            options, TreeOptions or dict with keys balance, neighbors, init,
                     tol, max_level, max_boxes (see options.TreeOptions)

        With options init set, this is from_template(func, init): domain, n
        and the remaining options are not used.
        """
        dom = check_domain(domain)
        n = check_degree(n)
        opts = parse_options(options)
        func = as_function(func)
        if opts.init is not None:
            logger.debug('Reusing the structure of %r; domain, n and the other options are not used.', opts.init)
            return cls.from_template(func, opts.init)

        tree = cls(n)
        tree._add_root(dom)
        oracle = ResolutionOracle()
        tree.unresolved = build_breadth_first(tree, func, opts.tol, oracle, opts.max_level, max_boxes=opts.max_boxes)
        if opts.balance:
            tree.unresolved += balance(tree, func, oracle, opts.tol, opts.max_level, max_boxes=opts.max_boxes)
        tree._finalize(opts.neighbors)
        logger.info('Built TreeFun on %s with n=%d: %d boxes, %d leaves, depth %d.',
                    dom.tolist(), n, len(tree), tree.leaves().size, tree._height[1])
        return tree

    @classmethod
    def from_template(cls, func, tree):
        """
        Sample func on the leaves of an existing tree, without adaptive refinement
        """
        func = as_function(func)
        if not isinstance(tree, TreeFun):
            raise ConfigurationError('tree must be a TreeFun.')
        out = tree.copy()
        out.unresolved = []
        oracle = ResolutionOracle()
        for id in out.leaves():
            out._set_coeffs(id, oracle.sample(func, out._domain[id], out.n))
        return out

    @classmethod
    def from_arrays(cls, domain, level, height, ids, parent, children, coeffs, col, row):
        """
        Rebuild a TreeFun from raw node arrays (one entry per box, id order)

        The degree is taken from the last coefficient block.  height must have
        one entry per box but its values are ignored: heights and Morton codes
        are recomputed, the tree is balanced (new leaves inherit their
        parent's polynomial) and neighbors are generated.
        """
        arrays = _validate_arrays(domain, level, height, ids, parent, children, coeffs, col, row)
        N = arrays['level'].size
        tree = cls(arrays['n'], capacity=N+1)
        tree._grow(N)
        tree._domain[1:N+1] = arrays['domain']
        tree._level[1:N+1] = arrays['level']
        tree._parent[1:N+1] = arrays['parent']
        tree._children[1:N+1] = arrays['children']
        tree._col[1:N+1] = arrays['col']
        tree._row[1:N+1] = arrays['row']
        for id, c in enumerate(arrays['coeffs'], start=1):
            tree._set_coeffs(id, c)
        compute_heights(tree._children, tree._height, N)
        balance(tree)
        tree._finalize(True)
        return tree

    ############################################################################
    # Store management

    def _grow(self, count):
        # reserve count new boxes and return the first new id
        first = self._nboxes + 1
        needed = first + count
        capacity = self._level.size
        if needed > capacity:
            capacity = max(2*capacity, needed)
            self._domain = extend_array(self._domain, capacity, True)
            self._level = extend_array(self._level, capacity, True)
            self._height = extend_array(self._height, capacity, True)
            self._parent = extend_array(self._parent, capacity, True)
            self._children = extend_array(self._children, capacity, True)
            self._col = extend_array(self._col, capacity, True)
            self._row = extend_array(self._row, capacity, True)
        self._nboxes += count
        self._coeffs.extend([None]*count)
        self._packed = None
        return first

    def _add_root(self, dom):
        id = self._grow(1)
        self._domain[id] = dom
        return id

    def _set_coeffs(self, id, coeffs):
        # stored blocks are read-only; replacing one resets the packed cache
        if coeffs is not None:
            coeffs.flags.writeable = False
        self._coeffs[id] = coeffs
        self._packed = None

    def _finalize(self, neighbors):
        self.morton = cartesian2morton(self.col, self.row)
        self.unresolved = [id for id in self.unresolved if self.is_leaf(id)]
        if neighbors:
            self.flat_neighbors, self.leaf_neighbors = generate_neighbors(self)
        else:
            self.flat_neighbors, self.leaf_neighbors = None, None

    def _packed_coeffs(self):
        if self._packed is None:
            packed = np.zeros((len(self)+1, self.n, self.n))
            for id in self.leaves():
                packed[id] = self._coeffs[id]
            self._packed = packed
        return self._packed

    def copy(self):
        out = type(self)(self.n, capacity=len(self)+1)
        out._grow(len(self))
        for name in ('_domain', '_level', '_height', '_parent', '_children', '_col', '_row'):
            getattr(out, name)[:] = getattr(self, name)[:len(self)+1]
        out._coeffs = list(self._coeffs)
        out.morton = self.morton.copy()
        if self.flat_neighbors is not None:
            out.flat_neighbors = self.flat_neighbors.copy()
            out.leaf_neighbors = list(self.leaf_neighbors)
        out.unresolved = list(self.unresolved)
        return out

    ############################################################################
    # Read access

    def __len__(self):
        return self._nboxes

    @property
    def domain(self):
        return self._domain[:self._nboxes+1]
    @property
    def level(self):
        return self._level[:self._nboxes+1]
    @property
    def height(self):
        return self._height[:self._nboxes+1]
    @property
    def parent(self):
        return self._parent[:self._nboxes+1]
    @property
    def children(self):
        return self._children[:self._nboxes+1]
    @property
    def col(self):
        return self._col[:self._nboxes+1]
    @property
    def row(self):
        return self._row[:self._nboxes+1]
    @property
    def coeffs(self):
        return tuple(self._coeffs)
    @property
    def ids(self):
        return np.arange(1, self._nboxes+1)

    def is_leaf(self, id):
        return self._children[id, 0] == 0

    def leaves(self):
        """
        Ids of the leaves, in increasing order
        """
        return np.where(self.children[1:, 0] == 0)[0] + 1

    def to_arrays(self):
        """
        Raw node arrays (no null row), accepted by TreeFun.from_arrays
        """
        N = len(self)
        return {
            'domain'   : self.domain[1:].copy(),
            'level'    : self.level[1:].copy(),
            'height'   : self.height[1:].copy(),
            'ids'      : self.ids,
            'parent'   : self.parent[1:].copy(),
            'children' : self.children[1:].copy(),
            'coeffs'   : [None if c is None else c.copy() for c in self._coeffs[1:N+1]],
            'col'      : self.col[1:].copy(),
            'row'      : self.row[1:].copy(),
        }

    def __call__(self, x, y):
        """
        Evaluate the piecewise polynomial at (x, y); nan outside the domain
        """
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        x, y = np.broadcast_arrays(x, y)
        sh = x.shape
        xs = np.ascontiguousarray(x).ravel()
        ys = np.ascontiguousarray(y).ravel()
        ids = locate(xs, ys, self.domain, self.children)
        return evaluate(xs, ys, ids, self.domain, self._packed_coeffs()).reshape(sh)

    def __repr__(self):
        if len(self) == 0:
            return 'TreeFun(empty, n={})'.format(self.n)
        return 'TreeFun(domain={}, n={}, boxes={}, leaves={}, depth={})'.format(
            self._domain[1].tolist(), self.n, len(self), self.leaves().size, self._height[1])

################################################################################
# Validation of raw node arrays

def _validate_arrays(domain, level, height, ids, parent, children, coeffs, col, row):
    ids = np.asarray(ids).ravel()
    N = ids.size
    if N == 0:
        raise StructureError('Node arrays are empty.')
    if not np.issubdtype(ids.dtype, np.integer):
        raise StructureError('ids must be integers.')
    if np.unique(ids).size != N:
        raise StructureError('ids are not unique.')
    if not np.array_equal(ids, np.arange(1, N+1)):
        raise StructureError('ids must be 1..N in creation order.')

    domain = np.asarray(domain, dtype=float)
    level = np.asarray(level).ravel()
    height = np.asarray(height)
    parent = np.asarray(parent).ravel()
    children = np.asarray(children)
    col = np.asarray(col).ravel()
    row = np.asarray(row).ravel()
    coeffs = list(coeffs)
    if domain.shape != (N, 4) or children.shape != (N, 4):
        raise StructureError('domain and children must have shape (N, 4).')
    if height.shape != (N,):
        raise StructureError('height must have one entry per id.')
    if level.size != N or parent.size != N or col.size != N or row.size != N or len(coeffs) != N:
        raise StructureError('All node arrays must have one entry per id.')
    for name, a in (('level', level), ('parent', parent), ('children', children), ('col', col), ('row', row)):
        if not np.issubdtype(a.dtype, np.integer):
            raise StructureError('{} must be an integer array.'.format(name))
        if np.any(a < 0):
            raise StructureError('{} must be non-negative.'.format(name))
    level = level.astype(np.int64)
    parent = parent.astype(np.int64)
    children = children.astype(np.int64)
    col = col.astype(np.uint64)
    row = row.astype(np.uint64)

    # tree topology
    if parent[0] != 0 or np.count_nonzero(parent == 0) != 1:
        raise StructureError('Box 1 must be the only root (parent 0).')
    if np.any(parent > N):
        raise StructureError('parent refers to a missing box.')
    is_leaf = children[:, 0] == 0
    if np.any((children == 0).any(axis=1) != is_leaf):
        raise StructureError('children must be all zero or all non-zero.')
    internal = np.where(~is_leaf)[0] + 1
    kids = children[internal-1]
    if np.any(kids > N):
        raise StructureError('children refers to a missing box.')
    if np.any(kids <= internal[:, None]):
        raise StructureError('children must be created after their parent.')
    listed = np.bincount(kids.ravel(), minlength=N+1)
    if listed[1] != 0 or np.any(listed[2:] != 1):
        raise StructureError('Every non-root box must be the child of exactly one box.')
    if np.any(parent[kids-1] != internal[:, None]):
        raise StructureError('parent and children are inconsistent.')

    # geometry
    if level[0] != 0 or col[0] != 0 or row[0] != 0:
        raise StructureError('The root must have level 0 and address (0, 0).')
    if np.any(level[kids-1] != level[internal-1][:, None] + 1):
        raise StructureError('Children must be one level below their parent.')
    if np.any(level > 31):
        raise StructureError('level exceeds the addressable depth.')
    dx = np.array([0, 1, 0, 1], dtype=np.uint64)
    dy = np.array([0, 0, 1, 1], dtype=np.uint64)
    pcol = col[internal-1][:, None]
    prow = row[internal-1][:, None]
    if np.any(col[kids-1] != np.uint64(2)*pcol + dx) or np.any(row[kids-1] != np.uint64(2)*prow + dy):
        raise StructureError('Child (col, row) must double the parent address plus the quadrant offset.')
    size = np.left_shift(np.uint64(1), level.astype(np.uint64))
    if np.any(col >= size) or np.any(row >= size):
        raise StructureError('(col, row) must lie in [0, 2^level).')
    if not (np.all(np.isfinite(domain)) and np.all(domain[:, 0] < domain[:, 1]) and np.all(domain[:, 2] < domain[:, 3])):
        raise StructureError('Every domain must satisfy xmin < xmax and ymin < ymax.')
    for id in internal:
        if not np.allclose(domain[children[id-1]-1], child_domains(domain[id-1]), rtol=0, atol=1e-12*np.abs(domain[id-1]).max()):
            raise StructureError('Children of box {} do not tile its quadrants.'.format(id))

    # coefficients
    last = coeffs[-1]
    if last is None or np.ndim(last) != 2:
        raise StructureError('The last box must be a leaf with a coefficient matrix.')
    n = np.shape(last)[0]
    if n < 2:
        raise StructureError('Coefficient matrices must be at least 2 x 2.')
    checked = []
    for id in range(1, N+1):
        c = coeffs[id-1]
        if is_leaf[id-1]:
            if c is None or np.shape(c) != (n, n):
                raise StructureError('Leaf {} needs an {} x {} coefficient matrix.'.format(id, n, n))
            checked.append(np.array(c, dtype=float))
        else:
            if c is not None and np.size(c) != 0:
                raise StructureError('Internal box {} must not carry coefficients.'.format(id))
            checked.append(None)

    return {
        'n'        : n,
        'domain'   : domain,
        'level'    : level,
        'parent'   : parent,
        'children' : children,
        'coeffs'   : checked,
        'col'      : col,
        'row'      : row,
    }
