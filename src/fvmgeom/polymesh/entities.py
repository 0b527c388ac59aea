# -*- coding: utf-8 -*-
"""
Raw mesh entities as delivered by a mesh loader.

This module defines `MeshEntities`, the immutable input of the mesh builder.
It holds, for every entity kind (vertex, edge, face, cell), the external
numbers and tags supplied by the loader, the vertex coordinates, and the
vertex list of each edge, face and cell. Vertex lists reference vertices by
their zero-based position, not by their external number.

Nothing is derived here; connectivity inversion and geometry are computed by
`MeshBuilder` in `unstructured_mesh`.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .connectivity import RaggedArray
from .errors import InvalidConnectivity

Connectivity = Union[RaggedArray, Sequence[Sequence[int]]]


def _as_ragged(conn: Connectivity) -> RaggedArray:
    if isinstance(conn, RaggedArray):
        return conn
    return RaggedArray.from_lists(conn)


def _frozen(values, dtype) -> np.ndarray:
    array = np.array(values, dtype=dtype)
    array.flags.writeable = False
    return array


def _default_numbers(count: int, numbers: Optional[Sequence[int]]) -> np.ndarray:
    if numbers is None:
        return np.arange(1, count + 1, dtype=np.int64)
    return np.asarray(numbers, dtype=np.int64)


def _default_tags(count: int, tags: Optional[Sequence[int]]) -> np.ndarray:
    if tags is None:
        return np.zeros(count, dtype=np.int64)
    return np.asarray(tags, dtype=np.int64)


@dataclass(frozen=True, eq=False)
class MeshEntities:
    """
    Immutable store of per-entity numbering, tags, coordinates and vertex lists.

    Attributes:
        vertex_coords (np.ndarray): Vertex coordinates.
            - Shape: `(n_vertices, 3)`
            - `dtype`: `float`
        vertex_numbers (np.ndarray): External vertex numbers, shape `(n_vertices,)`.
        vertex_tags (np.ndarray): Vertex tags, shape `(n_vertices,)`.
        edge_numbers (np.ndarray): External edge numbers.
        edge_tags (np.ndarray): Edge tags.
        edge_vertices (RaggedArray): Vertex indices of each edge.
        face_numbers (np.ndarray): External face numbers.
        face_tags (np.ndarray): Face tags; boundary patches use non-zero tags.
        face_vertices (RaggedArray): Vertex indices of each face (2 per face).
        cell_numbers (np.ndarray): External cell numbers.
        cell_tags (np.ndarray): Cell tags.
        cell_vertices (RaggedArray): Vertex indices of each cell in
            anticlockwise order.
        patch_names (Dict[str, int]): Optional names of the face tags
            (e.g. "inlet", "wall").
    """

    vertex_coords: np.ndarray
    vertex_numbers: np.ndarray
    vertex_tags: np.ndarray
    edge_numbers: np.ndarray
    edge_tags: np.ndarray
    edge_vertices: RaggedArray
    face_numbers: np.ndarray
    face_tags: np.ndarray
    face_vertices: RaggedArray
    cell_numbers: np.ndarray
    cell_tags: np.ndarray
    cell_vertices: RaggedArray
    patch_names: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        coords = np.array(self.vertex_coords, dtype=float)
        if coords.size == 0:
            coords = coords.reshape(0, 3)
        if coords.ndim != 2 or coords.shape[1] not in (2, 3):
            raise InvalidConnectivity(
                f"Vertex coordinates must have shape (n, 2) or (n, 3), got {coords.shape}."
            )
        if coords.shape[1] == 2:
            coords = np.hstack([coords, np.zeros((coords.shape[0], 1))])
        coords.flags.writeable = False
        object.__setattr__(self, "vertex_coords", coords)

        for kind in ("vertex", "edge", "face", "cell"):
            for attr in (f"{kind}_numbers", f"{kind}_tags"):
                object.__setattr__(self, attr, _frozen(getattr(self, attr), np.int64))
        for kind in ("edge", "face", "cell"):
            object.__setattr__(
                self, f"{kind}_vertices", _as_ragged(getattr(self, f"{kind}_vertices"))
            )
        object.__setattr__(self, "patch_names", dict(self.patch_names))

        self._check_lengths()

    def _check_lengths(self) -> None:
        """Every per-entity array of a kind must have the same length."""
        expected = {
            "vertex": self.vertex_coords.shape[0],
            "edge": len(self.edge_vertices),
            "face": len(self.face_vertices),
            "cell": len(self.cell_vertices),
        }
        for kind, count in expected.items():
            for attr in (f"{kind}_numbers", f"{kind}_tags"):
                if getattr(self, attr).shape != (count,):
                    raise InvalidConnectivity(
                        f"'{attr}' has shape {getattr(self, attr).shape}, "
                        f"expected ({count},)."
                    )

    # =========================================================================
    # Factories
    # =========================================================================

    @classmethod
    def from_lists(
        cls,
        vertex_coords,
        cell_vertices: Connectivity,
        face_vertices: Connectivity,
        edge_vertices: Connectivity,
        vertex_numbers: Optional[Sequence[int]] = None,
        vertex_tags: Optional[Sequence[int]] = None,
        edge_numbers: Optional[Sequence[int]] = None,
        edge_tags: Optional[Sequence[int]] = None,
        face_numbers: Optional[Sequence[int]] = None,
        face_tags: Optional[Sequence[int]] = None,
        cell_numbers: Optional[Sequence[int]] = None,
        cell_tags: Optional[Sequence[int]] = None,
        patch_names: Optional[Mapping[str, int]] = None,
    ) -> "MeshEntities":
        """
        Creates the entity store from per-entity vertex lists.

        Missing numbers default to 1..N and missing tags to 0.
        """
        cells = _as_ragged(cell_vertices)
        faces = _as_ragged(face_vertices)
        edges = _as_ragged(edge_vertices)
        n_vertices = len(vertex_coords)
        return cls(
            vertex_coords=vertex_coords,
            vertex_numbers=_default_numbers(n_vertices, vertex_numbers),
            vertex_tags=_default_tags(n_vertices, vertex_tags),
            edge_numbers=_default_numbers(len(edges), edge_numbers),
            edge_tags=_default_tags(len(edges), edge_tags),
            edge_vertices=edges,
            face_numbers=_default_numbers(len(faces), face_numbers),
            face_tags=_default_tags(len(faces), face_tags),
            face_vertices=faces,
            cell_numbers=_default_numbers(len(cells), cell_numbers),
            cell_tags=_default_tags(len(cells), cell_tags),
            cell_vertices=cells,
            patch_names=dict(patch_names or {}),
        )

    @classmethod
    def from_cells(
        cls,
        vertex_coords,
        cell_vertices: Connectivity,
        boundary_face_tags: Optional[Mapping[FrozenSet[int], int]] = None,
        vertex_numbers: Optional[Sequence[int]] = None,
        cell_numbers: Optional[Sequence[int]] = None,
        cell_tags: Optional[Sequence[int]] = None,
        patch_names: Optional[Mapping[str, int]] = None,
    ) -> "MeshEntities":
        """
        Creates the entity store from cell connectivity alone.

        Faces are the unique cell sides, numbered in order of first
        appearance; each face keeps the vertex order of the first cell that
        lists it. In the 2D model the edges coincide with the faces.

        Args:
            vertex_coords: Vertex coordinates, shape `(n, 2)` or `(n, 3)`.
            cell_vertices: Vertex indices of each cell (anticlockwise).
            boundary_face_tags: Tag of selected faces keyed by the frozenset
                of their two vertex indices. Other faces get tag 0.
        """
        cells = _as_ragged(cell_vertices)
        faces = unique_cell_sides(cells)
        tags_by_nodes = boundary_face_tags or {}
        face_tags = [tags_by_nodes.get(frozenset(face), 0) for face in faces]
        return cls.from_lists(
            vertex_coords,
            cells,
            faces,
            faces,
            vertex_numbers=vertex_numbers,
            edge_tags=face_tags,
            face_tags=face_tags,
            cell_numbers=cell_numbers,
            cell_tags=cell_tags,
            patch_names=patch_names,
        )

    # =========================================================================
    # Counts
    # =========================================================================

    @property
    def num_vertices(self) -> int:
        return int(self.vertex_coords.shape[0])

    @property
    def num_edges(self) -> int:
        return len(self.edge_vertices)

    @property
    def num_faces(self) -> int:
        return len(self.face_vertices)

    @property
    def num_cells(self) -> int:
        return len(self.cell_vertices)

    def numbering(self) -> List[Tuple[str, np.ndarray]]:
        """External numbers of each entity kind, in pipeline order."""
        return [
            ("vertex", self.vertex_numbers),
            ("edge", self.edge_numbers),
            ("face", self.face_numbers),
            ("cell", self.cell_numbers),
        ]


def unique_cell_sides(cell_vertices: RaggedArray) -> List[List[int]]:
    """Unique cell sides in order of first appearance."""
    face_index: Dict[Tuple[int, int], int] = {}
    faces: List[List[int]] = []
    for conn in cell_vertices:
        n = len(conn)
        for k in range(n):
            a, b = int(conn[k]), int(conn[(k + 1) % n])
            key = (a, b) if a < b else (b, a)
            if key not in face_index:
                face_index[key] = len(faces)
                faces.append([a, b])
    return faces
