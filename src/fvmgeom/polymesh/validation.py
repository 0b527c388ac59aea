# -*- coding: utf-8 -*-
"""
Invariant checks run at the end of each mesh construction stage.

Each check either returns silently or raises the matching
`MeshConstructionError` subclass with the offending entity indices attached.
"""

import numpy as np

from .connectivity import RaggedArray
from .entities import MeshEntities
from .errors import (
    DegenerateFace,
    DegenerateGeometry,
    InconsistentOrientation,
    InvalidConnectivity,
    NonContiguousNumbering,
    NonPositiveCellArea,
    UnmappedEntity,
)

# Show at most this many offending ids in an error message.
_MAX_REPORTED = 10


def _preview(indices: np.ndarray) -> str:
    shown = indices[:_MAX_REPORTED].tolist()
    more = indices.size - len(shown)
    return f"{shown}" + (f" (+{more} more)" if more > 0 else "")


def check_contiguous_numbering(kind: str, numbers: np.ndarray) -> None:
    """External numbers must span exactly `count` consecutive integers."""
    count = numbers.size
    if count == 0:
        return
    span = int(numbers.max()) - int(numbers.min()) + 1
    if span != count:
        raise NonContiguousNumbering(
            f"{count} {kind} numbers span the range "
            f"[{int(numbers.min())}, {int(numbers.max())}] of length {span}."
        )


def check_entity_shapes(entities: MeshEntities) -> None:
    """
    Checks the loader output: faces are segments, cells are polygons and
    every vertex index is in range.
    """
    face_counts = entities.face_vertices.counts
    bad = np.flatnonzero(face_counts != 2)
    if bad.size:
        raise InvalidConnectivity(
            f"Faces must have exactly 2 vertices; faces {_preview(bad)} do not.", bad
        )

    cell_counts = entities.cell_vertices.counts
    bad = np.flatnonzero(cell_counts < 3)
    if bad.size:
        raise InvalidConnectivity(
            f"Cells must have at least 3 vertices; cells {_preview(bad)} do not.", bad
        )

    n_vertices = entities.num_vertices
    for kind in ("edge", "face", "cell"):
        conn: RaggedArray = getattr(entities, f"{kind}_vertices")
        values = conn.values
        out_of_range = (values < 0) | (values >= n_vertices)
        if np.any(out_of_range):
            bad = np.unique(conn.row_ids[out_of_range])
            raise InvalidConnectivity(
                f"{kind.capitalize()}s {_preview(bad)} reference vertices outside "
                f"[0, {n_vertices}).",
                bad,
            )


def check_all_mapped(kind: str, target: str, inverse: RaggedArray) -> None:
    """Every `kind` entity must have at least one incident `target`."""
    unmapped = np.flatnonzero(inverse.counts < 1)
    if unmapped.size:
        raise UnmappedEntity(
            f"There are {kind}s not mapped to a {target}: {_preview(unmapped)}",
            unmapped,
        )


def check_manifold_faces(face_cells: RaggedArray) -> None:
    """A face bounds one cell (boundary) or two cells (interior), never more."""
    shared = np.flatnonzero(face_cells.counts > 2)
    if shared.size:
        raise InvalidConnectivity(
            f"Faces {_preview(shared)} are shared by more than two cells.", shared
        )


def check_face_areas(face_areas: np.ndarray, eps: float) -> None:
    degenerate = np.flatnonzero(~(np.abs(face_areas) >= eps))
    if degenerate.size:
        raise DegenerateFace(
            f"Faces {_preview(degenerate)} have coincident vertices (same points/bad face?).",
            degenerate,
        )


def check_orientation(
    normals: np.ndarray, tangents: np.ndarray, owners: np.ndarray, eps: float
) -> None:
    """
    The out-of-plane component of normal x tangent must be +1 for every
    cell-local face; anything else is an inward or non-unit normal.

    Args:
        normals (np.ndarray): Cell-local face normals, shape `(n, 3)`.
        tangents (np.ndarray): Cell-local face tangents, shape `(n, 3)`.
        owners (np.ndarray): Owning cell of each row, shape `(n,)`.
    """
    tcn = np.cross(normals, tangents)[:, 2] if normals.size else np.zeros(0)
    bad = np.flatnonzero(~(np.abs(tcn - 1.0) <= eps))
    if bad.size:
        cells = np.unique(owners[bad])
        raise InconsistentOrientation(
            f"Cells {_preview(cells)} have inward or non-unit face normals "
            f"(normal x tangent = {tcn[bad[0]]!r}).",
            cells,
        )


def check_cell_volumes(cell_volumes: np.ndarray, eps: float) -> None:
    bad = np.flatnonzero(~(cell_volumes > eps))
    if bad.size:
        raise NonPositiveCellArea(
            f"Cells {_preview(bad)} have non-positive area "
            f"(min {np.nanmin(cell_volumes[bad])!r}); check winding.",
            bad,
        )


def check_face_deltas(face_deltas: np.ndarray, eps: float) -> None:
    """Every face delta must exceed `eps`."""
    bad = np.flatnonzero(~(face_deltas > eps))
    if bad.size:
        raise DegenerateGeometry(
            f"Faces {_preview(bad)} have vanishing delta (collinear faces/bad cell?).",
            bad,
        )


def check_finite(kind: str, values: np.ndarray, rows: np.ndarray) -> None:
    """Interpolation weights must be finite."""
    finite = np.isfinite(values)
    if values.ndim > 1:
        finite = finite.all(axis=tuple(range(1, values.ndim)))
    bad = np.flatnonzero(~finite)
    if bad.size:
        entities = np.unique(rows[bad])
        raise DegenerateGeometry(
            f"Non-finite {kind} weights for entities {_preview(entities)}; "
            "check for non-finite vertex coordinates.",
            entities,
        )
