import numpy as np

from fvmgeom.polymesh.entities import MeshEntities


def unit_square_entities():
    """
    A single anticlockwise unit square.

        3 ---- 2
        |      |
        0 ---- 1
    """
    coords = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
    return MeshEntities.from_cells(coords, [[0, 1, 2, 3]])


def two_squares_entities():
    """
    Two unit squares sharing the face (1, 4).

        3 ---- 4 ---- 5
        |  c0  |  c1  |
        0 ---- 1 ---- 2
    """
    coords = np.array(
        [[0.0, 0.0], [1.0, 0.0], [2.0, 0.0], [0.0, 1.0], [1.0, 1.0], [2.0, 1.0]]
    )
    return MeshEntities.from_cells(coords, [[0, 1, 4, 3], [1, 2, 5, 4]])


def house_entities():
    """
    A unit square with a triangular roof on top (mixed cell shapes).

            4
           / \\
        3 ---- 2
        |      |
        0 ---- 1
    """
    coords = np.array(
        [[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0], [0.5, 1.5]]
    )
    return MeshEntities.from_cells(coords, [[0, 1, 2, 3], [3, 2, 4]])


def pentagon_fan_entities():
    """A regular pentagon split into five triangles around its center."""
    angles = np.pi / 2 + 2 * np.pi * np.arange(5) / 5
    ring = np.column_stack([np.cos(angles), np.sin(angles)])
    coords = np.vstack([[0.0, 0.0], ring])
    cells = [[0, 1 + k, 1 + (k + 1) % 5] for k in range(5)]
    return MeshEntities.from_cells(coords, cells)
