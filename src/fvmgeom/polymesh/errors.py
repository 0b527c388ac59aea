# -*- coding: utf-8 -*-
"""
Exceptions raised while building an unstructured mesh.

Every invariant violation found by the validation stages is reported as a
subclass of `MeshConstructionError`. None of them is recoverable for the mesh
under construction: the builder stops and no mesh object is returned. The
caller decides whether to abort or try another input.
"""

from typing import Iterable, Optional

import numpy as np


class MeshConstructionError(RuntimeError):
    """
    Base class for all fatal mesh construction failures.

    Attributes:
        indices (np.ndarray): Zero-based indices of the offending entities,
            empty when the failure is not tied to specific entities.
    """

    def __init__(self, message: str, indices: Optional[Iterable[int]] = None):
        super().__init__(message)
        self.indices = np.asarray(
            [] if indices is None else list(indices), dtype=int
        )


class NonContiguousNumbering(MeshConstructionError):
    """External numbers of an entity kind do not form a contiguous range."""


class UnmappedEntity(MeshConstructionError):
    """An entity has no incident entity where at least one is required."""


class DegenerateFace(MeshConstructionError):
    """The two vertices defining a face coincide."""


class NonPositiveCellArea(MeshConstructionError):
    """A cell's divergence-theorem area is not strictly positive."""


class InconsistentOrientation(MeshConstructionError):
    """A face normal is not unit length or points into its cell."""


class DegenerateGeometry(MeshConstructionError):
    """A face delta or interpolation distance vanishes."""


class InvalidConnectivity(MeshConstructionError, ValueError):
    """Loader output is malformed (bad shapes, out-of-range or ambiguous ids)."""


__all__ = [
    "MeshConstructionError",
    "NonContiguousNumbering",
    "UnmappedEntity",
    "DegenerateFace",
    "NonPositiveCellArea",
    "InconsistentOrientation",
    "DegenerateGeometry",
    "InvalidConnectivity",
]
