# -*- coding: utf-8 -*-
"""Boundary classification of faces and vertices."""

from dataclasses import dataclass
from typing import Dict

import numpy as np

from .connectivity import RaggedArray


@dataclass(frozen=True, eq=False)
class BoundaryInfo:
    """
    Boundary flags derived from face->cell incidence.

    Attributes:
        boundary_faces (np.ndarray): Ids of faces with exactly one cell.
        is_boundary_face (np.ndarray): Per-face flag, shape `(n_faces,)`.
        is_boundary_vertex (np.ndarray): Per-vertex flag, shape `(n_vertices,)`.
    """

    boundary_faces: np.ndarray
    is_boundary_face: np.ndarray
    is_boundary_vertex: np.ndarray

    @property
    def interior_faces(self) -> np.ndarray:
        return np.flatnonzero(~self.is_boundary_face)


def classify_boundary(
    face_cells: RaggedArray, face_vertices: RaggedArray, num_vertices: int
) -> BoundaryInfo:
    """
    Flags boundary faces (one incident cell) and the vertices they touch.
    """
    is_boundary_face = face_cells.counts == 1
    boundary_faces = np.flatnonzero(is_boundary_face)

    on_boundary_face = is_boundary_face[face_vertices.row_ids]
    is_boundary_vertex = np.zeros(num_vertices, dtype=bool)
    is_boundary_vertex[face_vertices.values[on_boundary_face]] = True

    for array in (boundary_faces, is_boundary_face, is_boundary_vertex):
        array.flags.writeable = False
    return BoundaryInfo(boundary_faces, is_boundary_face, is_boundary_vertex)


def group_boundary_faces(
    boundary_faces: np.ndarray, face_tags: np.ndarray
) -> Dict[int, np.ndarray]:
    """Groups boundary face ids by face tag (boundary patch)."""
    tags = face_tags[boundary_faces]
    return {int(tag): boundary_faces[tags == tag] for tag in np.unique(tags)}
