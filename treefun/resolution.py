import numpy as np
from treefun.transforms import chebpts2, vals2coeffs
from treefun.exceptions import ConfigurationError

################################################################################
# Resolution test for a single box

class ResolutionOracle:
    """
    Decide whether f is resolved on a box by a degree (n-1) x (n-1) polynomial

    f is sampled on a 2n x 2n Chebyshev grid, transformed to coefficients and
    truncated to the leading n x n block.  The error proxy is the average
    coefficient mass in the two trailing rows and the two trailing columns of
    that block:
        Ex  = sum(|c[-2:, :]|) / 2n
        Ey  = sum(|c[:, -2:]|) / 2n
        err = (Ex + Ey) / 2
    and the box is resolved when
        err < tol * max(1, max|f|)
    The size of the box does not enter the test.

    Reference grids on [0, 1]^2 are memoized by n, so one oracle should be
    reused across all boxes of a construction.
    """
    def __init__(self):
        self._grids = {}

    def grid(self, n):
        """
        Reference grids on [0, 1]^2 for degree n:
            (xx0, yy0),  the 2n x 2n oversampling grid
            (xn0, yn0),  the n x n native grid
        """
        if n not in self._grids:
            self._grids[n] = (chebpts2(2*n, 2*n, (0, 1, 0, 1)), chebpts2(n, n, (0, 1, 0, 1)))
        return self._grids[n]

    def __call__(self, f, dom, n, tol):
        """
        Inputs:
            f,   callable f(x, y) -> array of the same shape
            dom, f8[4], [xmin, xmax, ymin, ymax]
            n,   int,   number of coefficients per direction to keep
            tol, f8,    tolerance
        Outputs:
            resolved, bool
            coeffs,   f8[n, n]
        """
        (xx0, yy0), _ = self.grid(n)
        vals = _sample(f, xx0, yy0, dom)
        coeffs = vals2coeffs(vals)[:n, :n]
        Ex = np.abs(coeffs[-2:, :]).sum() / (2*n)
        Ey = np.abs(coeffs[:, -2:]).sum() / (2*n)
        err = (Ex + Ey) / 2
        vmax = np.abs(vals).max()
        resolved = bool(err < tol * max(vmax, 1.0))
        return resolved, coeffs

    def sample(self, f, dom, n):
        """
        Coefficients of the degree (n-1) interpolant of f on the n x n grid of dom
        """
        _, (xn0, yn0) = self.grid(n)
        return vals2coeffs(_sample(f, xn0, yn0, dom))

def _sample(f, xx0, yy0, dom):
    sclx = dom[1] - dom[0]
    scly = dom[3] - dom[2]
    xx = sclx*xx0 + dom[0]
    yy = scly*yy0 + dom[2]
    vals = np.asarray(f(xx, yy), dtype=float)
    if vals.shape != xx.shape:
        try:
            vals = np.broadcast_to(vals, xx.shape)
        except ValueError:
            raise ConfigurationError('Function returned shape {}, expected {}.'.format(vals.shape, xx.shape)) from None
    return vals
