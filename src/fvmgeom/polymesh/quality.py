# -*- coding: utf-8 -*-
"""
Computes and stores mesh quality metrics for an UnstructuredMesh object.

Quality metrics are diagnostics, not invariants: a mesh that made it through
the builder is valid, but highly non-orthogonal or skewed faces still degrade
the accuracy of diffusive fluxes. These metrics help to judge that.

Key Features:
- Cell volume ratio and per-cell aspect ratio (longest/shortest face).
- Face non-orthogonality angle between the centroidal vector and the normal.
- Normalized face skewness.
- Topological checks for duplicate cells.

Classes:
    MeshQuality: A class for computing and storing mesh quality metrics.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from .unstructured_mesh import UnstructuredMesh

# --- Constants for magic numbers ---
GEOMETRY_TOLERANCE = 1e-12


def face_non_orthogonality(
    centroidal_vectors: np.ndarray, face_deltas: np.ndarray
) -> np.ndarray:
    """
    Angle in degrees between each centroidal vector and its face normal,
    `arccos(delta / |l|)`. Zero on a perfectly orthogonal face.
    """
    lengths = np.linalg.norm(centroidal_vectors, axis=1)
    with np.errstate(divide="ignore", invalid="ignore"):
        cos_angle = np.where(lengths > GEOMETRY_TOLERANCE, face_deltas / lengths, 1.0)
    return np.degrees(np.arccos(np.clip(cos_angle, -1.0, 1.0)))


@dataclass(frozen=True)
class MeshQuality:
    """
    Stores mesh quality metrics for an UnstructuredMesh object.

    Instances of this class are created via the `from_mesh` class method.

    Attributes:
        min_max_volume_ratio (float): Ratio of the smallest to the largest cell volume.
        face_non_orthogonality_values (np.ndarray): Non-orthogonality (degrees)
            of each face.
        face_skewness_values (np.ndarray): `|skewness| / |l|` of each face.
        cell_non_orthogonality_values (np.ndarray): Largest face
            non-orthogonality (degrees) of each cell.
        cell_aspect_ratio_values (np.ndarray): Longest over shortest face of
            each cell.
        connectivity_issues (List[str]): A list of strings describing any
            topological issues found in the mesh.
    """

    min_max_volume_ratio: float
    face_non_orthogonality_values: np.ndarray
    face_skewness_values: np.ndarray
    cell_non_orthogonality_values: np.ndarray
    cell_aspect_ratio_values: np.ndarray
    connectivity_issues: List[str]

    @classmethod
    def from_mesh(cls, mesh: "UnstructuredMesh") -> "MeshQuality":
        """
        Computes all mesh quality metrics from a mesh and returns a new instance.
        """
        if mesh.num_cells == 0:
            return cls(
                min_max_volume_ratio=0.0,
                face_non_orthogonality_values=np.array([]),
                face_skewness_values=np.array([]),
                cell_non_orthogonality_values=np.array([]),
                cell_aspect_ratio_values=np.array([]),
                connectivity_issues=[],
            )

        face_angles = face_non_orthogonality(mesh.centroidal_vectors, mesh.face_deltas)
        return cls(
            min_max_volume_ratio=cls._compute_volume_ratio(mesh),
            face_non_orthogonality_values=face_angles,
            face_skewness_values=cls._compute_face_skewness(mesh),
            cell_non_orthogonality_values=cls._per_cell_max(mesh, face_angles),
            cell_aspect_ratio_values=cls._compute_aspect_ratio(mesh),
            connectivity_issues=cls._check_connectivity(mesh),
        )

    @property
    def max_non_orthogonality(self) -> float:
        if self.face_non_orthogonality_values.size == 0:
            return 0.0
        return float(np.max(self.face_non_orthogonality_values))

    @staticmethod
    def _compute_volume_ratio(mesh: "UnstructuredMesh") -> float:
        """Calculates the ratio of the smallest to the largest cell volume."""
        min_vol = np.min(mesh.cell_volumes)
        max_vol = np.max(mesh.cell_volumes)
        return float(min_vol / max_vol) if max_vol > 0.0 else 0.0

    @staticmethod
    def _compute_face_skewness(mesh: "UnstructuredMesh") -> np.ndarray:
        lengths = np.linalg.norm(mesh.centroidal_vectors, axis=1)
        skewness = np.zeros(mesh.num_faces)
        valid = lengths > GEOMETRY_TOLERANCE
        skewness[valid] = np.abs(mesh.face_skewness[valid]) / lengths[valid]
        return skewness

    @staticmethod
    def _per_cell_max(mesh: "UnstructuredMesh", face_values: np.ndarray) -> np.ndarray:
        """Largest value of a per-face metric over the faces of each cell."""
        cell_faces = mesh.cell_faces
        return np.maximum.reduceat(face_values[cell_faces.values], cell_faces.offsets[:-1])

    @staticmethod
    def _compute_aspect_ratio(mesh: "UnstructuredMesh") -> np.ndarray:
        cell_faces = mesh.cell_faces
        lengths = mesh.face_areas[cell_faces.values]
        longest = np.maximum.reduceat(lengths, cell_faces.offsets[:-1])
        shortest = np.minimum.reduceat(lengths, cell_faces.offsets[:-1])
        return longest / shortest

    @staticmethod
    def _check_connectivity(mesh: "UnstructuredMesh") -> List[str]:
        """Checks for topological issues like duplicate cells."""
        issues = []
        seen = {}
        for ci, conn in enumerate(mesh.cell_vertices):
            key = tuple(sorted(conn.tolist()))
            if key in seen:
                issues.append(f"Cell {ci} duplicates cell {seen[key]}.")
            else:
                seen[key] = ci
        return issues
