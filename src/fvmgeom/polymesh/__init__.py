# -*- coding: utf-8 -*-
"""
This package derives the full topology and geometry of an unstructured 2D
polygonal mesh from the raw entities of a mesh loader, for use in Finite
Volume Method (FVM) simulations.

Key modules:
- entities:          Raw loader input (numbers, tags, coordinates, vertex lists).
- connectivity:      Ragged (CSR) storage, inversion and cell->face composition.
- boundary:          Boundary face and vertex classification.
- geometry:          Centers, areas, normals, deltas and interpolation weights.
- validation:        Invariant checks raising typed errors.
- unstructured_mesh: The builder pipeline and the read-only mesh aggregate.
- quality:           Non-fatal mesh quality metrics.
"""

from .config import MeshTolerances
from .connectivity import RaggedArray, invert_connectivity, build_cell_faces
from .entities import MeshEntities
from .errors import (
    MeshConstructionError,
    NonContiguousNumbering,
    UnmappedEntity,
    DegenerateFace,
    NonPositiveCellArea,
    InconsistentOrientation,
    DegenerateGeometry,
    InvalidConnectivity,
)
from .gmsh_reader import read_gmsh
from .quality import MeshQuality
from .unstructured_mesh import MeshBuilder, UnstructuredMesh

__all__ = [
    "MeshTolerances",
    "RaggedArray",
    "invert_connectivity",
    "build_cell_faces",
    "MeshEntities",
    "MeshConstructionError",
    "NonContiguousNumbering",
    "UnmappedEntity",
    "DegenerateFace",
    "NonPositiveCellArea",
    "InconsistentOrientation",
    "DegenerateGeometry",
    "InvalidConnectivity",
    "read_gmsh",
    "MeshQuality",
    "MeshBuilder",
    "UnstructuredMesh",
]
