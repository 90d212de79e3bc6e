import numpy as np

"""
Morton (Z-order) codes for quadtree addresses

Bit i of col goes to bit 2i of the code and bit i of row to bit 2i+1, so the
quadrant digit of a child is dx | dy << 1 and the ancestor k levels up has
code morton >> 2k.  Coordinates are limited to 32 bits.
"""

_ONE = np.uint64(1)
_MASKS = (
    (np.uint64(16), np.uint64(0x0000FFFF0000FFFF)),
    (np.uint64(8),  np.uint64(0x00FF00FF00FF00FF)),
    (np.uint64(4),  np.uint64(0x0F0F0F0F0F0F0F0F)),
    (np.uint64(2),  np.uint64(0x3333333333333333)),
    (np.uint64(1),  np.uint64(0x5555555555555555)),
)
_LOW32 = np.uint64(0x00000000FFFFFFFF)

def _part1by1(v):
    # spread the low 32 bits of v onto the even bit positions
    v = v & _LOW32
    for shift, mask in _MASKS:
        v = (v | (v << shift)) & mask
    return v

def _compact1by1(v):
    # inverse of _part1by1
    shifts = [shift for shift, _ in reversed(_MASKS)]
    masks = [mask for _, mask in reversed(_MASKS)][1:] + [_LOW32]
    v = v & _MASKS[-1][1]
    for shift, mask in zip(shifts, masks):
        v = (v | (v >> shift)) & mask
    return v

def cartesian2morton(col, row):
    """
    Interleave the bits of col and row

    Inputs:
        col, u8[:] or scalar
        row, u8[:] or scalar
    Outputs:
        morton, u8[:] (or np.uint64 for scalar inputs)
    """
    col = np.asarray(col, dtype=np.uint64)
    row = np.asarray(row, dtype=np.uint64)
    out = _part1by1(col) | (_part1by1(row) << _ONE)
    return out[()] if out.ndim == 0 else out

def morton2cartesian(morton):
    """
    Inverse of cartesian2morton, returns (col, row)
    """
    morton = np.asarray(morton, dtype=np.uint64)
    col = _compact1by1(morton)
    row = _compact1by1(morton >> _ONE)
    if morton.ndim == 0:
        return col[()], row[()]
    return col, row

def ancestor_morton(morton, levels_up):
    """
    Code of the ancestor levels_up levels above a box
    """
    morton = np.asarray(morton, dtype=np.uint64)
    out = morton >> (np.uint64(2)*np.asarray(levels_up, dtype=np.uint64))
    return out[()] if out.ndim == 0 else out

def box_keys(morton, level):
    """
    Keys unique across levels: a sentinel bit above the 2*level code bits
    """
    morton = np.asarray(morton, dtype=np.uint64)
    level = np.asarray(level, dtype=np.uint64)
    out = morton | (_ONE << (np.uint64(2)*level))
    return out[()] if out.ndim == 0 else out
