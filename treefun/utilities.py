import numbers
import numpy as np
from treefun.exceptions import ConfigurationError

def extend_array(a, new_size, fill_zero=False):
    """
    Return a copy of a with its leading dimension grown to new_size
    (trailing dimensions are kept)
    """
    new = np.empty((new_size,) + a.shape[1:], a.dtype)
    new[:a.shape[0]] = a
    if fill_zero:
        new[a.shape[0]:] = 0
    return new

def as_function(func):
    """
    Coerce func to a vectorized callable func(x, y)

    Scalars become constant functions.  Anything callable (including a TreeFun)
    is passed through untouched.
    """
    if isinstance(func, numbers.Real):
        c = float(func)
        return lambda x, y: c + 0.0*x
    if callable(func):
        return func
    raise ConfigurationError("func must be a callable f(x, y) or a real scalar.")
