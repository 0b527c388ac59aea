"""
fvmgeom

Topology and geometry of unstructured 2D polygonal meshes for Finite Volume
Method (FVM) solvers.
"""

from . import meshgen
from . import polymesh

__all__ = [
    "meshgen",
    "polymesh",
]
