# -*- coding: utf-8 -*-
"""
Structured rectangle meshes for tests and quick experiments.

Both generators lay out (nx + 1) x (ny + 1) vertices on a regular grid with
the origin at the bottom-left corner and tag the boundary faces as:
- 1: bottom
- 2: right
- 3: top
- 4: left
"""

from typing import Dict, FrozenSet, List

import numpy as np

from ..polymesh.entities import MeshEntities

BOTTOM_TAG, RIGHT_TAG, TOP_TAG, LEFT_TAG = 1, 2, 3, 4
PATCH_NAMES = {"bottom": BOTTOM_TAG, "right": RIGHT_TAG, "top": TOP_TAG, "left": LEFT_TAG}


def _check_size(nx: int, ny: int, dx: float, dy: float) -> None:
    if nx < 1 or ny < 1:
        raise ValueError(f"Need at least one cell in each direction, got nx={nx}, ny={ny}.")
    if dx <= 0.0 or dy <= 0.0:
        raise ValueError(f"Cell sizes must be positive, got dx={dx}, dy={dy}.")


def _grid_coords(nx: int, ny: int, dx: float, dy: float) -> np.ndarray:
    """Vertex coordinates, row by row from the bottom."""
    x = np.arange(nx + 1) * dx
    y = np.arange(ny + 1) * dy
    xx, yy = np.meshgrid(x, y)
    return np.column_stack([xx.ravel(), yy.ravel(), np.zeros(xx.size)])


def _boundary_tags(nx: int, ny: int) -> Dict[FrozenSet[int], int]:
    """Tags of the grid boundary faces keyed by their two vertex indices."""
    num_nodes_x = nx + 1

    def node(i, j):
        return j * num_nodes_x + i

    tags: Dict[FrozenSet[int], int] = {}
    for i in range(nx):
        tags[frozenset((node(i, 0), node(i + 1, 0)))] = BOTTOM_TAG
        tags[frozenset((node(i, ny), node(i + 1, ny)))] = TOP_TAG
    for j in range(ny):
        tags[frozenset((node(nx, j), node(nx, j + 1)))] = RIGHT_TAG
        tags[frozenset((node(0, j), node(0, j + 1)))] = LEFT_TAG
    return tags


def _quad_cells(nx: int, ny: int) -> List[List[int]]:
    num_nodes_x = nx + 1
    cells = []
    for j in range(ny):
        for i in range(nx):
            n0 = j * num_nodes_x + i
            n1 = j * num_nodes_x + (i + 1)
            n2 = (j + 1) * num_nodes_x + (i + 1)
            n3 = (j + 1) * num_nodes_x + i
            cells.append([n0, n1, n2, n3])
    return cells


def create_structured_quad_entities(
    nx: int, ny: int, dx: float = 1.0, dy: float = 1.0
) -> MeshEntities:
    """
    Creates an nx x ny grid of dx x dy rectangles.

    Args:
        nx (int): Number of cells in the x-direction.
        ny (int): Number of cells in the y-direction.
        dx (float): Cell width.
        dy (float): Cell height.

    Returns:
        MeshEntities: Anticlockwise quad cells with tagged boundary faces.
    """
    _check_size(nx, ny, dx, dy)
    return MeshEntities.from_cells(
        _grid_coords(nx, ny, dx, dy),
        _quad_cells(nx, ny),
        boundary_face_tags=_boundary_tags(nx, ny),
        patch_names=PATCH_NAMES,
    )


def create_structured_tri_entities(
    nx: int, ny: int, dx: float = 1.0, dy: float = 1.0
) -> MeshEntities:
    """
    Creates an nx x ny grid of rectangles, each split into two triangles
    along its bottom-left to top-right diagonal.
    """
    _check_size(nx, ny, dx, dy)
    cells = []
    for n0, n1, n2, n3 in _quad_cells(nx, ny):
        cells.append([n0, n1, n2])
        cells.append([n0, n2, n3])
    return MeshEntities.from_cells(
        _grid_coords(nx, ny, dx, dy),
        cells,
        boundary_face_tags=_boundary_tags(nx, ny),
        patch_names=PATCH_NAMES,
    )
