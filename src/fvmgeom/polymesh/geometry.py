# -*- coding: utf-8 -*-
"""
Geometric quantities of a 2D polygonal mesh for finite volume assembly.

Each function is one evaluation stage: a vectorized pass over a single entity
kind that only depends on the results of earlier stages. The stages, in the
order `MeshBuilder` runs them, are:

1. cell centers (vertex average)
2. face centers and areas (segment midpoint and length)
3. cell-local face tangents and outward normals
4. cell areas from the divergence theorem
5. centroidal vectors between the cells of a face
6. face deltas (non-orthogonality) and skewness
7. cell->face interpolation weights
8. cell->vertex interpolation weights

Cell-local quantities (normals, tangents) are returned as `RaggedArray`s that
share their offsets with the cell->vertex and cell->face relations: slot `k`
of cell `c` belongs to the face joining cell-local vertices `k` and `k + 1`.
"""

from typing import Tuple

import numpy as np

from .connectivity import RaggedArray


def compute_cell_centers(
    vertex_coords: np.ndarray, cell_vertices: RaggedArray
) -> np.ndarray:
    """Arithmetic mean of the vertex coordinates of each cell."""
    if len(cell_vertices) == 0:
        return np.zeros((0, 3))
    sums = np.add.reduceat(
        vertex_coords[cell_vertices.values], cell_vertices.offsets[:-1], axis=0
    )
    return sums / cell_vertices.counts[:, None]


def compute_face_centers_areas(
    vertex_coords: np.ndarray, face_vertices: RaggedArray
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Midpoint and length of each two-vertex face.

    Returns:
        Tuple[np.ndarray, np.ndarray]: Face centers `(n_faces, 3)` and face
        areas `(n_faces,)`.
    """
    ends = vertex_coords[face_vertices.values].reshape(-1, 2, 3)
    centers = ends.mean(axis=1)
    areas = np.linalg.norm(ends[:, 1] - ends[:, 0], axis=1)
    return centers, areas


def compute_face_tangents_normals(
    vertex_coords: np.ndarray, cell_vertices: RaggedArray
) -> Tuple[RaggedArray, RaggedArray]:
    """
    Unit tangent and outward unit normal of every cell-local face.

    The tangent runs from cell-local vertex `k` to `k + 1`; the normal is the
    tangent rotated by -90 degrees in the plane, `(t_y, -t_x, 0)`, which
    points out of an anticlockwise polygon.

    Returns:
        Tuple[RaggedArray, RaggedArray]: Tangents and normals, one 3-vector
        per cell-local face.
    """
    offsets = cell_vertices.offsets
    positions = np.arange(cell_vertices.values.shape[0])
    next_positions = positions + 1
    # The last vertex of each cell wraps around to its first vertex.
    next_positions[offsets[1:] - 1] = offsets[:-1]

    first = vertex_coords[cell_vertices.values]
    second = vertex_coords[cell_vertices.values[next_positions]]
    edges = second - first
    with np.errstate(divide="ignore", invalid="ignore"):
        tangents = edges / np.linalg.norm(edges, axis=1)[:, None]

    normals = np.zeros_like(tangents)
    normals[:, 0] = tangents[:, 1]
    normals[:, 1] = -tangents[:, 0]
    return cell_vertices.with_values(tangents), cell_vertices.with_values(normals)


def compute_cell_volumes(
    cell_faces: RaggedArray,
    cell_face_normals: RaggedArray,
    face_centers: np.ndarray,
    face_areas: np.ndarray,
) -> np.ndarray:
    """
    Cell areas from the divergence theorem, V = sum_f n_x * x_f * A_f.

    The sign of the result follows the cell winding, so clockwise or
    self-intersecting cells give non-positive areas.
    """
    if len(cell_faces) == 0:
        return np.zeros(0)
    faces = cell_faces.values
    contrib = cell_face_normals.values[:, 0] * face_centers[faces, 0] * face_areas[faces]
    return np.add.reduceat(contrib, cell_faces.offsets[:-1])


def compute_centroidal_vectors(
    face_cell_pairs: np.ndarray, cell_centers: np.ndarray, face_centers: np.ndarray
) -> np.ndarray:
    """
    Vector between the two cell centers of an interior face (first to second
    cell), or from the cell center to the face center for a boundary face.
    """
    first, second = face_cell_pairs[:, 0], face_cell_pairs[:, 1]
    lvec = face_centers - cell_centers[first]
    interior = second >= 0
    lvec[interior] = cell_centers[second[interior]] - cell_centers[first[interior]]
    return lvec


def compute_face_deltas(
    centroidal_vectors: np.ndarray,
    cell_face_normals: RaggedArray,
    cell_face_tangents: RaggedArray,
    first_cell_positions: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Face delta |l . n| and skewness l . t, evaluated with the normal and
    tangent of each face at its first incident cell.

    Args:
        first_cell_positions (np.ndarray): Flat slot of each face in the
            cell->face relation at its first incident cell.

    Returns:
        Tuple[np.ndarray, np.ndarray]: Deltas and skewness, each `(n_faces,)`.
    """
    normals = cell_face_normals.values[first_cell_positions]
    tangents = cell_face_tangents.values[first_cell_positions]
    deltas = np.abs(np.einsum("ij,ij->i", centroidal_vectors, normals))
    skewness = np.einsum("ij,ij->i", centroidal_vectors, tangents)
    return deltas, skewness


def compute_face_weights(
    face_cell_pairs: np.ndarray, cell_centers: np.ndarray, face_centers: np.ndarray
) -> np.ndarray:
    """
    Inverse-distance weights interpolating cell values to face centers.

    A cell center lying on the face center takes the whole weight, the limit
    of the inverse-distance formula as its distance goes to zero.

    Returns:
        np.ndarray: Shape `(n_faces, 2)`. Interior faces get
        `w1 = (1/d1) / (1/d1 + 1/d2)` and `w2 = 1 - w1`; boundary faces get
        `[1, 0]`.
    """
    first, second = face_cell_pairs[:, 0], face_cell_pairs[:, 1]
    weights = np.zeros((face_cell_pairs.shape[0], 2))
    weights[:, 0] = 1.0

    interior = np.flatnonzero(second >= 0)
    d1 = np.linalg.norm(cell_centers[first[interior]] - face_centers[interior], axis=1)
    d2 = np.linalg.norm(cell_centers[second[interior]] - face_centers[interior], axis=1)
    with np.errstate(divide="ignore", invalid="ignore"):
        inv1, inv2 = 1.0 / d1, 1.0 / d2
        w1 = inv1 / (inv1 + inv2)
    w1 = np.where(d2 == 0.0, 0.0, w1)
    w1 = np.where(d1 == 0.0, 1.0, w1)
    weights[interior, 0] = w1
    weights[interior, 1] = 1.0 - w1
    return weights


def compute_vertex_weights(
    vertex_coords: np.ndarray, vertex_cells: RaggedArray, cell_centers: np.ndarray
) -> RaggedArray:
    """
    Inverse-distance weights interpolating cell values to vertices.

    Raw weights are summed per vertex first and divided afterwards, so the
    weights of every vertex add up to one. When cell centers coincide with
    the vertex, those cells share the weight and all others get zero.

    Returns:
        RaggedArray: One weight per (vertex, incident cell), aligned with
        `vertex_cells`.
    """
    if len(vertex_cells) == 0:
        return vertex_cells.with_values(np.zeros(0))
    vertices = vertex_cells.row_ids
    starts = vertex_cells.offsets[:-1]
    distances = np.linalg.norm(
        cell_centers[vertex_cells.values] - vertex_coords[vertices], axis=1
    )
    coincident = distances == 0.0
    snapped = np.add.reduceat(coincident.astype(np.int64), starts) > 0
    with np.errstate(divide="ignore", invalid="ignore"):
        raw = np.where(snapped[vertices], coincident.astype(float), 1.0 / distances)
        totals = np.add.reduceat(raw, starts)
        weights = raw / totals[vertices]
    return vertex_cells.with_values(weights)
