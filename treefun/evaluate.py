import numpy as np
import numba

################################################################################
# Low-Level Functions for point location and evaluation

@numba.njit(parallel=True, fastmath=True)
def locate(xs, ys, domain, children):
    """
    Find the leaf holding each point (0 for points outside the root box)

    Children are visited in quadrant order, so the child index is
    (x > xmid) + 2*(y > ymid).
    """
    ids = np.empty(xs.size, dtype=numba.int64)
    xm = domain[1, 0]
    xM = domain[1, 1]
    ym = domain[1, 2]
    yM = domain[1, 3]
    for i in numba.prange(xs.size):
        x = xs[i]
        y = ys[i]
        okx = x >= xm and x <= xM
        oky = y >= ym and y <= yM
        if okx and oky:
            id = 1
            while children[id, 0] != 0:
                xmid = 0.5*(domain[id, 0] + domain[id, 1])
                ymid = 0.5*(domain[id, 2] + domain[id, 3])
                k = 0
                if x > xmid:
                    k += 1
                if y > ymid:
                    k += 2
                id = children[id, k]
            ids[i] = id
        else:
            ids[i] = 0
    return ids

@numba.njit(parallel=False, fastmath=True)
def _numba_chbevl(x, c):
    x2 = 2*x
    c0 = c[-2]
    c1 = c[-1]
    for i in range(3, len(c) + 1):
        tmp = c0
        c0 = c[-i] - c1
        c1 = tmp + c1*x2
    return c0 + c1*x
@numba.njit(parallel=False, fastmath=True)
def _numba_chbevl2(x, y, c, temp):
    # c[i, j] multiplies T_i(y) T_j(x)
    order = c.shape[0]
    for i in range(order):
        temp[i] = _numba_chbevl(x, c[i])
    return _numba_chbevl(y, temp)
@numba.njit(parallel=True)
def evaluate(xs, ys, ids, domain, coeffs):
    """
    Evaluate leaf expansions at points (nan where ids == 0)

    Inputs:
        xs,     f8[m], x coordinates
        ys,     f8[m], y coordinates
        ids,    i8[m], leaf holding each point (from locate)
        domain, f8[N+1, 4], box domains indexed by id
        coeffs, f8[N+1, n, n], leaf coefficients indexed by id
    """
    out = np.empty_like(xs)
    for i in numba.prange(xs.size):
        id = ids[i]
        if id == 0:
            out[i] = np.nan
        else:
            xmin = domain[id, 0]
            xmax = domain[id, 1]
            ymin = domain[id, 2]
            ymax = domain[id, 3]
            # transform back to [-1,1] to do cheb sum
            xt = (xs[i] - xmin) / (xmax - xmin) * 2.0 - 1.0
            yt = (ys[i] - ymin) / (ymax - ymin) * 2.0 - 1.0
            temp = np.empty(coeffs.shape[1])
            out[i] = _numba_chbevl2(xt, yt, coeffs[id], temp)
    return out
