import numpy as np
import scipy as sp
import scipy.fft

"""
Chebyshev value <-> coefficient transforms on tensor grids of Chebyshev points
of the second kind (the extrema of T_{n-1}, endpoints included)

Layout convention: values live on the grid returned by chebpts2, whose rows
vary in y and whose columns vary in x.  Coefficients use the same layout,
i.e. coeffs[i, j] multiplies T_i(y) T_j(x).
"""

def chebpts(n, a=-1.0, b=1.0):
    """
    n Chebyshev points of the second kind, in ascending order, mapped to [a, b]
    """
    if n == 1:
        return np.array([0.5*(a+b)])
    m = n - 1
    x = np.sin(np.pi*np.arange(-m, m+1, 2)/(2*m))
    return 0.5*(b-a)*(x+1.0) + a

def chebpts2(nx, ny=None, dom=(-1.0, 1.0, -1.0, 1.0)):
    """
    Tensor Chebyshev grid on dom = [xmin, xmax, ymin, ymax]

    Returns xx, yy with shape (ny, nx)
    """
    if ny is None:
        ny = nx
    x = chebpts(nx, dom[0], dom[1])
    y = chebpts(ny, dom[2], dom[3])
    return np.meshgrid(x, y)

def _vals2coeffs_axis(vals, axis):
    # values are stored in ascending order; DCT-I wants cos(πj/(n-1)) order
    n = vals.shape[axis]
    coeffs = sp.fft.dct(np.flip(vals, axis), type=1, axis=axis) / (n-1)
    coeffs = np.moveaxis(coeffs, axis, 0)
    coeffs[0] *= 0.5
    coeffs[-1] *= 0.5
    return np.moveaxis(coeffs, 0, axis)

def _coeffs2vals_axis(coeffs, axis):
    c = np.moveaxis(coeffs.copy(), axis, 0)
    c[1:-1] *= 0.5
    vals = sp.fft.dct(np.moveaxis(c, 0, axis), type=1, axis=axis)
    return np.flip(vals, axis)

def vals2coeffs(vals):
    """
    Convert samples on a chebpts2 grid to a bivariate Chebyshev coefficient matrix

    Inputs:
        vals, f8[ny, nx], samples, ny >= 2 and nx >= 2
    Outputs:
        coeffs, f8[ny, nx]
    """
    vals = np.asarray(vals, dtype=float)
    return _vals2coeffs_axis(_vals2coeffs_axis(vals, 0), 1)

def coeffs2vals(coeffs):
    """
    Inverse of vals2coeffs
    """
    coeffs = np.asarray(coeffs, dtype=float)
    return _coeffs2vals_axis(_coeffs2vals_axis(coeffs, 0), 1)
