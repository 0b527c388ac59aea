# -*- coding: utf-8 -*-
"""
Ragged connectivity storage and the topology derivations built on it.

Every "entity -> list of neighbors" relation of the mesh (cell vertices, face
cells, vertex cells, ...) has a variable number of entries per entity. They are
all stored as a `RaggedArray`: one flat buffer of values plus an offsets array,
the same layout as the indptr/indices pair of a CSR sparse matrix. No padding
and no sentinel values are needed.

Key Features:
- `RaggedArray`: immutable CSR-style container with list/padded/sparse views.
- `invert_connectivity`: inverse of a forward relation (count-then-fill).
- `build_cell_faces`: cell->face map composed from cell->vertex order and the
  vertex->face map.
- Lookup helpers used by the geometry stage and by assemblers.
"""

from typing import Iterator, List, Optional, Sequence

import numpy as np
from scipy.sparse import csr_matrix

from .errors import InvalidConnectivity


class RaggedArray:
    """
    A read-only jagged array stored as flat values plus row offsets.

    Row `i` is `values[offsets[i]:offsets[i + 1]]`. The values may carry
    trailing dimensions, e.g. one 3-vector per entry for per-face normals that
    are aligned with a cell->face relation.

    Attributes:
        offsets (np.ndarray): Row start positions, shape `(n_rows + 1,)`.
        values (np.ndarray): Flat row entries, shape `(offsets[-1], ...)`.
    """

    def __init__(self, offsets: Sequence[int], values, dtype=None) -> None:
        offsets = np.array(offsets, dtype=np.int64).reshape(-1)
        values = np.array(values, dtype=dtype)
        if offsets.size == 0 or offsets[0] != 0:
            raise ValueError("Offsets must start with 0.")
        if np.any(np.diff(offsets) < 0):
            raise ValueError("Offsets must be non-decreasing.")
        if offsets[-1] != values.shape[0]:
            raise ValueError(
                f"Offsets end at {offsets[-1]} but {values.shape[0]} values were given."
            )
        offsets.flags.writeable = False
        values.flags.writeable = False
        self._offsets = offsets
        self._values = values

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_lists(cls, rows: Sequence[Sequence[int]], dtype=np.int64) -> "RaggedArray":
        """Builds a ragged array from a list of per-entity lists."""
        counts = [len(row) for row in rows]
        offsets = np.zeros(len(counts) + 1, dtype=np.int64)
        np.cumsum(counts, out=offsets[1:])
        flat = [v for row in rows for v in row]
        return cls(offsets, np.array(flat, dtype=dtype).reshape(len(flat)), dtype=dtype)

    @classmethod
    def from_padded(
        cls, padded: np.ndarray, counts: Sequence[int], dtype=np.int64
    ) -> "RaggedArray":
        """
        Builds a ragged array from a fixed-width padded table.

        Args:
            padded (np.ndarray): Table of shape `(n_rows, width)`; only the
                first `counts[i]` entries of row `i` are used.
            counts (Sequence[int]): Number of valid entries per row.
        """
        padded = np.asarray(padded)
        counts = np.asarray(counts, dtype=np.int64)
        if padded.ndim != 2 or padded.shape[0] != counts.size:
            raise InvalidConnectivity(
                f"Padded table of shape {padded.shape} does not match "
                f"{counts.size} row counts."
            )
        bad = np.flatnonzero((counts < 0) | (counts > padded.shape[1]))
        if bad.size:
            raise InvalidConnectivity(
                f"Row counts out of range [0, {padded.shape[1]}] for rows {bad.tolist()}",
                bad,
            )
        mask = np.arange(padded.shape[1]) < counts[:, None]
        offsets = np.zeros(counts.size + 1, dtype=np.int64)
        np.cumsum(counts, out=offsets[1:])
        return cls(offsets, padded[mask], dtype=dtype)

    @classmethod
    def from_counts(cls, counts: Sequence[int], values, dtype=None) -> "RaggedArray":
        """Builds a ragged array from per-row counts and the flat values."""
        counts = np.asarray(counts, dtype=np.int64)
        offsets = np.zeros(counts.size + 1, dtype=np.int64)
        np.cumsum(counts, out=offsets[1:])
        return cls(offsets, values, dtype=dtype)

    def with_values(self, values) -> "RaggedArray":
        """Returns a ragged array with the same rows holding other values."""
        return RaggedArray(self._offsets, values)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def offsets(self) -> np.ndarray:
        return self._offsets

    @property
    def values(self) -> np.ndarray:
        return self._values

    @property
    def counts(self) -> np.ndarray:
        """Number of entries in each row."""
        return np.diff(self._offsets)

    @property
    def max_count(self) -> int:
        return int(self.counts.max()) if len(self) else 0

    @property
    def row_ids(self) -> np.ndarray:
        """The row each flat value belongs to."""
        return np.repeat(np.arange(len(self), dtype=np.int64), self.counts)

    def __len__(self) -> int:
        return self._offsets.size - 1

    def __getitem__(self, row: int) -> np.ndarray:
        if row < 0:
            row += len(self)
        if not 0 <= row < len(self):
            raise IndexError(f"Row {row} out of range for {len(self)} rows.")
        return self._values[self._offsets[row] : self._offsets[row + 1]]

    def __iter__(self) -> Iterator[np.ndarray]:
        for row in range(len(self)):
            yield self[row]

    def __repr__(self) -> str:
        return f"RaggedArray(n_rows={len(self)}, n_values={self._values.shape[0]})"

    def to_lists(self) -> List[list]:
        return [row.tolist() for row in self]

    def to_padded(self, fill_value: int = -1) -> np.ndarray:
        """Returns a `(n_rows, max_count)` table padded with `fill_value`."""
        table = np.full(
            (len(self), self.max_count) + self._values.shape[1:],
            fill_value,
            dtype=np.result_type(self._values.dtype, np.min_scalar_type(fill_value)),
        )
        mask = np.arange(self.max_count) < self.counts[:, None]
        table[mask] = self._values
        return table

    def to_csr(self, num_columns: Optional[int] = None) -> csr_matrix:
        """
        Returns the relation as a sparse incidence matrix.

        Entry `(i, j)` is non-zero when row `i` lists `j`.
        """
        if self._values.ndim != 1:
            raise ValueError("Only integer index relations convert to a matrix.")
        if num_columns is None:
            num_columns = int(self._values.max()) + 1 if self._values.size else 0
        data = np.ones(self._values.size, dtype=np.int64)
        return csr_matrix(
            (data, self._values, self._offsets), shape=(len(self), num_columns)
        )


def invert_connectivity(forward: RaggedArray, num_targets: int) -> RaggedArray:
    """
    Inverts an "entity -> neighbors" relation into "neighbor -> entities".

    Per-target counts are taken first so that every bucket is allocated with
    its exact size, then a stable sort of the flat values fills the buckets.
    Within a bucket the entities appear in traversal order: ascending source
    entity, then position in the source list. Targets that nobody lists get an
    empty bucket.

    Args:
        forward (RaggedArray): The forward relation.
        num_targets (int): Number of target entities.

    Returns:
        RaggedArray: The inverse relation with `num_targets` rows.
    """
    values = forward.values
    if values.size and (values.min() < 0 or values.max() >= num_targets):
        bad = np.flatnonzero((values < 0) | (values >= num_targets))
        raise InvalidConnectivity(
            f"Connectivity references targets outside [0, {num_targets}): "
            f"{np.unique(values[bad]).tolist()}",
            np.unique(forward.row_ids[bad]),
        )
    counts = np.bincount(values.astype(np.int64), minlength=num_targets)
    order = np.argsort(values, kind="stable")
    return RaggedArray.from_counts(counts, forward.row_ids[order])


def build_cell_faces(
    cell_vertices: RaggedArray, vertex_faces: RaggedArray
) -> RaggedArray:
    """
    Composes the cell->face map from cell vertex order and vertex->face map.

    Cell-local face `k` is the face joining cell-local vertices `k` and
    `k + 1` (cyclic), so the face order follows the cell winding.

    Raises:
        InvalidConnectivity: If a cell side is matched by no face or by
            more than one face.
    """
    vertex_face_sets = [set(faces.tolist()) for faces in vertex_faces]
    cell_faces = np.empty(cell_vertices.values.shape[0], dtype=np.int64)

    for ci, conn in enumerate(cell_vertices):
        start = cell_vertices.offsets[ci]
        num_nodes = len(conn)
        for k in range(num_nodes):
            a, b = int(conn[k]), int(conn[(k + 1) % num_nodes])
            shared = vertex_face_sets[a] & vertex_face_sets[b]
            if len(shared) != 1:
                raise InvalidConnectivity(
                    f"Side ({a}, {b}) of cell {ci} matches {len(shared)} faces, "
                    "expected exactly one.",
                    [ci],
                )
            cell_faces[start + k] = shared.pop()

    return cell_vertices.with_values(cell_faces)


def face_cell_pairs(face_cells: RaggedArray) -> np.ndarray:
    """
    Returns the first and second incident cell of every face.

    Faces are expected to have one or two incident cells; the second column
    holds -1 for faces with a single cell.
    """
    counts = face_cells.counts
    if np.any(counts < 1) or np.any(counts > 2):
        raise InvalidConnectivity("Faces must have one or two incident cells.")
    starts = face_cells.offsets[:-1]
    pairs = -np.ones((len(face_cells), 2), dtype=np.int64)
    pairs[:, 0] = face_cells.values[starts]
    interior = counts == 2
    pairs[interior, 1] = face_cells.values[starts[interior] + 1]
    return pairs


def first_positions(forward: RaggedArray, num_targets: int) -> np.ndarray:
    """
    Flat position of the first occurrence of each target in a relation.

    For cell->face this is the slot of each face at its first incident cell,
    the slot that holds the normal used for the face delta. Targets never
    listed get -1.
    """
    positions = -np.ones(num_targets, dtype=np.int64)
    targets, first = np.unique(forward.values, return_index=True)
    positions[targets] = first
    return positions


def find_local_face(cell_faces: RaggedArray, cell: int, face: int) -> int:
    """
    Returns the cell-local index of a global face.

    Raises:
        ValueError: If the face does not bound the cell.
    """
    hits = np.flatnonzero(cell_faces[cell] == face)
    if hits.size == 0:
        raise ValueError(f"Face {face} is not a face of cell {cell}.")
    return int(hits[0])


def cell_neighbors(cell_faces: RaggedArray, pairs: np.ndarray) -> RaggedArray:
    """
    Cell across each cell-local face, aligned with `cell_faces` (-1 at the boundary).
    """
    faces = cell_faces.values
    owners = cell_faces.row_ids
    first, second = pairs[faces, 0], pairs[faces, 1]
    return cell_faces.with_values(np.where(first == owners, second, first))
