import numpy as np
import time
from treefun.tree import TreeFun

"""
Demonstration of treefun
"""

################################################################################
# Setup

n   = 16        # coefficients per direction on each leaf
tol = 1e-10     # resolution tolerance
ng  = 200       # number of points in evaluation grid (in each direction)

f = lambda x, y: np.tanh(30*x)*np.tanh(30*y) + np.exp(-40*((x-0.5)**2 + (y+0.3)**2))
g = lambda x, y: np.cos(3*x)*np.sin(2*y)

print('\n\nTreefun demonstration, n =', n, ', tol = {:0.1e}'.format(tol))
print('All times given in ms.')

################################################################################
# Adaptive construction

# first run to compile numba functions
tf = TreeFun.from_function(f, n=n, options={'tol': tol})
tf(np.zeros(1), np.zeros(1))
st = time.time()
tf = TreeFun.from_function(f, n=n, options={'tol': tol})
time_build = time.time() - st

leaves = tf.leaves()
print('Time to build tree:         {:0.1f}'.format(time_build*1000))
print('Boxes:', len(tf), ' leaves:', leaves.size, ' depth:', tf.height[tf.root])
print('Leaves per level:', np.bincount(tf.level[leaves]))

################################################################################
# Check the level restriction

worst = 0
for id in leaves:
    for side in tf.leaf_neighbors[id]:
        for nbr in side:
            worst = max(worst, abs(tf.level[id] - tf.level[nbr]))
print('Largest level jump between adjacent leaves:', worst)

################################################################################
# Evaluate on a grid

xv = np.linspace(-1, 1, ng)
x, y = np.meshgrid(xv, xv, indexing='ij')
st = time.time()
fe = tf(x, y)
time_eval = time.time() - st
print('Time to evaluate on grid:   {:0.1f}'.format(time_eval*1000))
print('Max error on grid:          {:0.2e}'.format(np.abs(fe - f(x, y)).max()))

################################################################################
# Reuse the tree structure for another function

st = time.time()
tg = TreeFun.from_template(g, tf)
time_template = time.time() - st
print('Time to refill leaves:      {:0.1f}'.format(time_template*1000))
print('Max error on grid:          {:0.2e}'.format(np.abs(tg(x, y) - g(x, y)).max()))

################################################################################
# Round trip through raw arrays

th = TreeFun.from_arrays(**tf.to_arrays())
print('Round trip preserves leaves:', np.array_equal(th.leaves(), tf.leaves()))
