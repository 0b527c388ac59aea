# -*- coding: utf-8 -*-
"""
Reads a 2D Gmsh mesh into `MeshEntities` through the Gmsh Python API.

The reader keeps the primary (corner) nodes of the 2D elements as cell
vertices, turns dimension-1 physical groups into boundary face tags and lets
`MeshEntities.from_cells` enumerate the faces. Gmsh nodes not used by any 2D
element (geometry points, higher-order nodes) are dropped, and the remaining
vertices are renumbered 1..N in Gmsh node order.
"""

import logging
from typing import Dict, FrozenSet, List, Tuple

import gmsh
import numpy as np

from .entities import MeshEntities

log = logging.getLogger(__name__)


def read_gmsh(
    msh_file: str, gmsh_verbose: int = 0, orient_cells: bool = True
) -> MeshEntities:
    """
    Reads mesh data from a Gmsh .msh file using the Gmsh Python API.

    Args:
        msh_file (str): The path to the .msh file.
        gmsh_verbose (int): The verbosity level for the Gmsh API.
        orient_cells (bool): Reverse clockwise cells so that every cell lists
            its vertices anticlockwise.

    Returns:
        MeshEntities: Vertices, cells and tagged faces of the 2D mesh.
    """
    log.info("Reading Gmsh mesh from %s", msh_file)
    gmsh.initialize()
    gmsh.option.setNumber("General.Verbosity", gmsh_verbose)
    try:
        gmsh.open(msh_file)
        node_tags, coords = _read_nodes()
        tag_to_index = {int(t): i for i, t in enumerate(node_tags)}
        cells, cell_types = _read_elements(tag_to_index)
        face_tags, patch_names = _read_physical_groups(tag_to_index)
    finally:
        gmsh.finalize()

    if not cells:
        raise ValueError(f"No 2D elements found in '{msh_file}'.")

    coords, cells, face_tags = _drop_unused_nodes(coords, cells, face_tags)
    if orient_cells:
        cells = _orient_anticlockwise(coords, cells)

    log.info(
        "Read %d vertices, %d cells and %d tagged boundary faces",
        coords.shape[0],
        len(cells),
        len(face_tags),
    )
    return MeshEntities.from_cells(
        coords,
        cells,
        boundary_face_tags=face_tags,
        cell_tags=cell_types,
        patch_names=patch_names,
    )


def _read_nodes() -> Tuple[np.ndarray, np.ndarray]:
    """Reads node tags and coordinates, sorted by node tag."""
    raw_tags, raw_coords, _ = gmsh.model.mesh.getNodes()
    tags = np.array(raw_tags, dtype=np.int64)
    coords = np.array(raw_coords, dtype=float).reshape(-1, 3)
    order = np.argsort(tags, kind="stable")
    return tags[order], coords[order]


def _read_elements(tag_to_index: Dict[int, int]) -> Tuple[List[List[int]], List[int]]:
    """Reads the corner nodes of every 2D element, in Gmsh element order."""
    elem_types, _, connectivity_list = gmsh.model.mesh.getElements(dim=2)

    cells, cell_types = [], []
    for i, et in enumerate(elem_types):
        props = gmsh.model.mesh.getElementProperties(et)
        n_nodes, n_primary = int(props[3]), int(props[5])
        raw_conn = np.array(connectivity_list[i], dtype=np.int64).reshape(-1, n_nodes)
        for conn in raw_conn[:, :n_primary]:
            cells.append([tag_to_index[int(t)] for t in conn])
        cell_types.extend([int(et)] * raw_conn.shape[0])
        log.debug("Read %d elements of type %s", raw_conn.shape[0], props[0])
    return cells, cell_types


def _read_physical_groups(
    tag_to_index: Dict[int, int]
) -> Tuple[Dict[FrozenSet[int], int], Dict[str, int]]:
    """
    Reads physical groups of dimension 1 to tag boundary faces.

    Each boundary face can only belong to one physical group; a face listed
    by two groups raises `ValueError`.
    """
    face_tags: Dict[FrozenSet[int], int] = {}
    patch_names: Dict[str, int] = {}

    for dim, tag in gmsh.model.getPhysicalGroups(1):
        name = gmsh.model.getPhysicalName(dim, tag) or str(tag)
        patch_names[name] = tag
        for ent in gmsh.model.getEntitiesForPhysicalGroup(dim, tag):
            elem_types, _, node_tags_per_type = gmsh.model.mesh.getElements(dim, ent)
            for i, etype in enumerate(elem_types):
                props = gmsh.model.mesh.getElementProperties(etype)
                n_nodes = int(props[3])
                faces = np.array(node_tags_per_type[i], dtype=np.int64).reshape(-1, n_nodes)
                # Corner nodes of a line element come first.
                for face in faces[:, :2]:
                    key = frozenset(tag_to_index[int(t)] for t in face)
                    if key in face_tags and face_tags[key] != tag:
                        raise ValueError(
                            f"Boundary face with nodes {sorted(key)} is assigned to "
                            f"multiple physical groups ({face_tags[key]} and {tag})."
                        )
                    face_tags[key] = tag
    return face_tags, patch_names


def _drop_unused_nodes(
    coords: np.ndarray,
    cells: List[List[int]],
    face_tags: Dict[FrozenSet[int], int],
) -> Tuple[np.ndarray, List[List[int]], Dict[FrozenSet[int], int]]:
    """Removes nodes not referenced by any cell and compacts the indices."""
    used = np.zeros(coords.shape[0], dtype=bool)
    for conn in cells:
        used[conn] = True
    if used.all():
        return coords, cells, face_tags

    new_index = np.full(coords.shape[0], -1, dtype=np.int64)
    new_index[used] = np.arange(np.count_nonzero(used))
    log.debug("Dropping %d nodes not used by any cell", int(np.count_nonzero(~used)))

    cells = [new_index[conn].tolist() for conn in cells]
    face_tags = {
        frozenset(int(new_index[v]) for v in key): tag
        for key, tag in face_tags.items()
        if all(used[v] for v in key)
    }
    return coords[used], cells, face_tags


def _orient_anticlockwise(coords: np.ndarray, cells: List[List[int]]) -> List[List[int]]:
    """Reverses cells with a negative signed (shoelace) area."""
    oriented = []
    n_flipped = 0
    for conn in cells:
        xy = coords[conn, :2]
        rolled = np.roll(xy, -1, axis=0)
        signed_area = 0.5 * np.sum(xy[:, 0] * rolled[:, 1] - rolled[:, 0] * xy[:, 1])
        if signed_area < 0.0:
            oriented.append(conn[::-1])
            n_flipped += 1
        else:
            oriented.append(conn)
    if n_flipped:
        log.info("Reversed %d clockwise cells", n_flipped)
    return oriented
