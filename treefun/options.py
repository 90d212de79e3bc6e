import numbers
from dataclasses import dataclass, fields
import numpy as np
from treefun.exceptions import ConfigurationError

DEFAULT_N = 16
DEFAULT_TOL = 1e-12
DEFAULT_DOMAIN = (-1.0, 1.0, -1.0, 1.0)
# boxes at this level are accepted even if unresolved
MAX_LEVEL = 25
# refinement stops splitting once the store would grow past this many boxes
MAX_BOXES = 2**14
# (col, row) at level L need L bits each; box keys need 2L+1 bits of a uint64
MORTON_MAX_LEVEL = 31

@dataclass
class TreeOptions:
    """
    Switches for TreeFun.from_function

        balance,   bool,          enforce the 2:1 level restriction
        neighbors, bool,          generate flat_neighbors / leaf_neighbors
        init,      TreeFun|None,  reuse this tree's structure, only refill leaves
                                  (the other switches are then unused)
        tol,       float,         resolution tolerance (relative to max(1, max|f|))
        max_level, int,           deepest level refinement may reach
        max_boxes, int,           box budget for adaptive refinement
    """
    balance: bool = True
    neighbors: bool = True
    init: object = None
    tol: float = DEFAULT_TOL
    max_level: int = MAX_LEVEL
    max_boxes: int = MAX_BOXES

    def __post_init__(self):
        self.tol = check_tolerance(self.tol)
        self.max_level = check_max_level(self.max_level)
        self.max_boxes = check_max_boxes(self.max_boxes)
        if self.init is not None:
            from treefun.tree import TreeFun
            if not isinstance(self.init, TreeFun):
                raise ConfigurationError("init must be None or a TreeFun.")
        self.balance = bool(self.balance)
        self.neighbors = bool(self.neighbors)

def parse_options(options):
    """
    Accept None, a dict of TreeOptions fields, or a TreeOptions
    """
    if options is None:
        return TreeOptions()
    if isinstance(options, TreeOptions):
        return options
    if not isinstance(options, dict):
        raise ConfigurationError("options must be None, dict or TreeOptions.")
    known = {f.name for f in fields(TreeOptions)}
    unknown = set(options) - known
    if unknown:
        raise ConfigurationError('Unrecognized options: {}'.format(', '.join(sorted(unknown))))
    return TreeOptions(**options)

def check_domain(domain):
    try:
        dom = np.asarray(domain, dtype=float).ravel()
    except (TypeError, ValueError):
        raise ConfigurationError("domain must be [xmin, xmax, ymin, ymax].") from None
    if dom.size != 4:
        raise ConfigurationError("domain must be [xmin, xmax, ymin, ymax].")
    if not np.all(np.isfinite(dom)):
        raise ConfigurationError("domain must be finite.")
    if not (dom[0] < dom[1] and dom[2] < dom[3]):
        raise ConfigurationError("domain must satisfy xmin < xmax and ymin < ymax.")
    return dom

def check_degree(n):
    if isinstance(n, bool) or not isinstance(n, numbers.Integral):
        raise ConfigurationError("n must be an integer.")
    if n < 2:
        raise ConfigurationError("n must be >= 2.")
    return int(n)

def check_tolerance(tol):
    if isinstance(tol, bool) or not isinstance(tol, numbers.Real):
        raise ConfigurationError("tol must be a real number.")
    if not (np.isfinite(tol) and tol > 0):
        raise ConfigurationError("tol must be positive and finite.")
    return float(tol)

def check_max_level(max_level):
    if isinstance(max_level, bool) or not isinstance(max_level, numbers.Integral):
        raise ConfigurationError("max_level must be an integer.")
    if not 0 <= max_level <= MORTON_MAX_LEVEL:
        raise ConfigurationError("max_level must lie in [0, {}].".format(MORTON_MAX_LEVEL))
    return int(max_level)

def check_max_boxes(max_boxes):
    if isinstance(max_boxes, bool) or not isinstance(max_boxes, numbers.Integral):
        raise ConfigurationError("max_boxes must be an integer.")
    if max_boxes < 1:
        raise ConfigurationError("max_boxes must be >= 1.")
    return int(max_boxes)
