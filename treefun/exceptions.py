"""
Errors and warnings raised while building a TreeFun
"""

class TreeFunError(Exception):
    """Base exception for treefun errors."""
    pass

class ConfigurationError(TreeFunError, ValueError):
    """Raised for a malformed domain, degree, tolerance or option record."""
    pass

class StructureError(TreeFunError, ValueError):
    """Raised when raw node arrays do not describe a well-formed quadtree."""
    pass

class BalanceError(TreeFunError, RuntimeError):
    """Raised when level restriction does not reach a fixed point."""
    pass

class ResolutionWarning(UserWarning):
    """Issued when boxes at the maximum level still fail the resolution test."""
    pass
