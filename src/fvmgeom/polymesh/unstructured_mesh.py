# -*- coding: utf-8 -*-
"""
This module defines the `UnstructuredMesh` class, the read-only mesh aggregate
handed to finite volume assemblers, and the `MeshBuilder` that produces it.

The builder takes the raw `MeshEntities` of a loader and runs the derivation
pipeline stage by stage:

    entities -> vertex->cell, vertex->face, vertex->edge inversion
             -> cell->face composition -> face->cell inversion
             -> boundary classification -> geometry evaluation

Each stage is validated before the next one starts. Any violated invariant
raises a `MeshConstructionError`; an `UnstructuredMesh` only exists once every
stage has passed, and all of its arrays are read-only.
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union

import numpy as np
import matplotlib.pyplot as plt
from scipy.sparse import csr_matrix

from . import geometry, validation
from .boundary import BoundaryInfo, classify_boundary, group_boundary_faces
from .config import MeshTolerances
from .connectivity import (
    RaggedArray,
    build_cell_faces,
    cell_neighbors,
    face_cell_pairs,
    find_local_face,
    first_positions,
    invert_connectivity,
)
from ..common.utility import plot_mesh
from .entities import MeshEntities
from .gmsh_reader import read_gmsh
from .quality import MeshQuality, face_non_orthogonality
from .reporting import format_mesh_summary

log = logging.getLogger(__name__)

# Number of entities shown in debug previews of each stage.
_PREVIEW_ROWS = 10


def _read_only(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


@dataclass(frozen=True, eq=False)
class UnstructuredMesh:
    """
    A validated 2D polygonal mesh with all topology and geometry derived.

    Attributes:
        entities (MeshEntities): The loader input (numbers, tags, coordinates,
            vertex lists).
        tolerances (MeshTolerances): Tolerances the mesh was validated with.
        vertex_cells (RaggedArray): Cells incident to each vertex.
        vertex_faces (RaggedArray): Faces incident to each vertex.
        vertex_edges (RaggedArray): Edges incident to each vertex.
        cell_faces (RaggedArray): Faces of each cell in cell-local order; face
            `k` joins cell-local vertices `k` and `k + 1`.
        face_cells (RaggedArray): Cells of each face (one or two), in
            ascending cell order.
        face_cell_pairs (np.ndarray): First and second cell of each face, -1
            in the second column for boundary faces.
            - Shape: `(n_faces, 2)`
        cell_neighbors (RaggedArray): Cell across each cell-local face, -1 on
            the boundary. Aligned with `cell_faces`.
        boundary (BoundaryInfo): Boundary face ids and face/vertex flags.
        cell_centers (np.ndarray): Vertex-average center of each cell, `(n_cells, 3)`.
        cell_volumes (np.ndarray): Area of each cell, `(n_cells,)`.
        face_centers (np.ndarray): Midpoint of each face, `(n_faces, 3)`.
        face_areas (np.ndarray): Length of each face, `(n_faces,)`.
        local_face_tangents (RaggedArray): Unit tangent of each cell-local
            face, aligned with `cell_faces`.
        local_face_normals (RaggedArray): Outward unit normal of each
            cell-local face, aligned with `cell_faces`.
        centroidal_vectors (np.ndarray): Cell-to-cell (interior) or
            cell-to-face (boundary) vector of each face, `(n_faces, 3)`.
        face_deltas (np.ndarray): Projection of the centroidal vector on the
            face normal, `(n_faces,)`.
        face_skewness (np.ndarray): Projection of the centroidal vector on the
            face tangent, `(n_faces,)`.
        face_weights (np.ndarray): Cell->face interpolation weights,
            `(n_faces, 2)`; `[1, 0]` on boundary faces.
        vertex_weights (RaggedArray): Cell->vertex interpolation weights,
            aligned with `vertex_cells`.
    """

    entities: MeshEntities
    tolerances: MeshTolerances

    # Topology
    vertex_cells: RaggedArray
    vertex_faces: RaggedArray
    vertex_edges: RaggedArray
    cell_faces: RaggedArray
    face_cells: RaggedArray
    face_cell_pairs: np.ndarray
    cell_neighbors: RaggedArray
    boundary: BoundaryInfo

    # Geometry
    cell_centers: np.ndarray
    cell_volumes: np.ndarray
    face_centers: np.ndarray
    face_areas: np.ndarray
    local_face_tangents: RaggedArray
    local_face_normals: RaggedArray
    centroidal_vectors: np.ndarray
    face_deltas: np.ndarray
    face_skewness: np.ndarray
    face_weights: np.ndarray
    vertex_weights: RaggedArray

    dimension: int = field(default=2, init=False)

    # =========================================================================
    # Factories
    # =========================================================================

    @classmethod
    def from_entities(
        cls, entities: MeshEntities, tolerances: Optional[MeshTolerances] = None
    ) -> "UnstructuredMesh":
        """Builds and validates a mesh from loader entities."""
        return MeshBuilder(entities, tolerances).build()

    @classmethod
    def from_gmsh(
        cls,
        msh_file: str,
        gmsh_verbose: int = 0,
        tolerances: Optional[MeshTolerances] = None,
    ) -> "UnstructuredMesh":
        """
        Reads a Gmsh .msh file and builds the mesh from it.

        Args:
            msh_file (str): The path to the .msh file.
            gmsh_verbose (int): The verbosity level for the Gmsh API (0-10).
            tolerances (MeshTolerances, optional): Validation tolerances.
        """
        return cls.from_entities(read_gmsh(msh_file, gmsh_verbose), tolerances)

    @classmethod
    def create_structured_quad_mesh(
        cls, nx: int, ny: int, dx: float = 1.0, dy: float = 1.0
    ) -> "UnstructuredMesh":
        """
        Creates an nx x ny grid of rectangular cells with tagged boundaries
        (1: bottom, 2: right, 3: top, 4: left).
        """
        from ..meshgen.structured import create_structured_quad_entities

        return cls.from_entities(create_structured_quad_entities(nx, ny, dx, dy))

    # =========================================================================
    # Counts and pass-through data
    # =========================================================================

    @property
    def vertex_coords(self) -> np.ndarray:
        return self.entities.vertex_coords

    @property
    def cell_vertices(self) -> RaggedArray:
        return self.entities.cell_vertices

    @property
    def face_vertices(self) -> RaggedArray:
        return self.entities.face_vertices

    @property
    def num_vertices(self) -> int:
        return self.entities.num_vertices

    @property
    def num_edges(self) -> int:
        return self.entities.num_edges

    @property
    def num_faces(self) -> int:
        return self.entities.num_faces

    @property
    def num_cells(self) -> int:
        return self.entities.num_cells

    @property
    def boundary_faces(self) -> np.ndarray:
        return self.boundary.boundary_faces

    @property
    def is_boundary_face(self) -> np.ndarray:
        return self.boundary.is_boundary_face

    @property
    def is_boundary_vertex(self) -> np.ndarray:
        return self.boundary.is_boundary_vertex

    # =========================================================================
    # Assembler lookups
    # =========================================================================

    def local_face_index(self, cell: int, face: int) -> int:
        """Cell-local index of a global face (`ValueError` if not a face of the cell)."""
        return find_local_face(self.cell_faces, cell, face)

    def face_neighbor(self, cell: int, local_face: int) -> int:
        """Cell across a cell-local face, or -1 on the boundary."""
        return int(self.cell_neighbors[cell][local_face])

    def cell_face_normals(self, cell: int) -> np.ndarray:
        """Outward unit normals of the faces of a cell, shape `(n_local, 3)`."""
        return self.local_face_normals[cell]

    def cell_face_tangents(self, cell: int) -> np.ndarray:
        """Unit tangents of the faces of a cell, shape `(n_local, 3)`."""
        return self.local_face_tangents[cell]

    def cell_face_normal(self, cell: int, face: int) -> np.ndarray:
        """Outward unit normal of a global face as seen from `cell`."""
        return self.local_face_normals[cell][self.local_face_index(cell, face)]

    def face_cell_pair(self, face: int) -> Tuple[int, int]:
        """First and second cell of a face; the second is -1 on the boundary."""
        first, second = self.face_cell_pairs[face]
        return int(first), int(second)

    def vertex_cell_weights(self, vertex: int) -> Tuple[np.ndarray, np.ndarray]:
        """Incident cells of a vertex and their interpolation weights."""
        return self.vertex_cells[vertex], self.vertex_weights[vertex]

    def boundary_patches(self) -> Dict[Union[str, int], np.ndarray]:
        """
        Boundary faces grouped by face tag. Tags with a name in the loader's
        patch map are keyed by that name.
        """
        names = {tag: name for name, tag in self.entities.patch_names.items()}
        groups = group_boundary_faces(self.boundary_faces, self.entities.face_tags)
        return {names.get(tag, tag): faces for tag, faces in groups.items()}

    def cell_adjacency_matrix(self) -> csr_matrix:
        """
        Symmetric cell-to-cell adjacency matrix; entry (i, j) is non-zero when
        cells i and j share a face.
        """
        interior = self.face_cell_pairs[self.face_cell_pairs[:, 1] >= 0]
        rows = np.concatenate([interior[:, 0], interior[:, 1]])
        cols = np.concatenate([interior[:, 1], interior[:, 0]])
        return csr_matrix(
            (np.ones(rows.size, dtype=np.int64), (rows, cols)),
            shape=(self.num_cells, self.num_cells),
        )

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def quality(self) -> MeshQuality:
        """Computes the non-fatal quality metrics of the mesh."""
        return MeshQuality.from_mesh(self)

    def print_summary(self) -> None:
        """Prints a formatted summary report of the mesh."""
        print(format_mesh_summary(self, self.quality()))

    def plot(
        self,
        filepath: str = "mesh_plot.png",
        show_cells: bool = False,
        show_nodes: bool = False,
        show_normals: bool = False,
    ) -> None:
        """
        Generates a plot of the mesh and saves it to a file.

        Args:
            filepath (str): The path to save the plot image.
            show_cells (bool): Whether to label cells with their index.
            show_nodes (bool): Whether to label vertices with their index.
            show_normals (bool): Whether to draw the outward face normals.
        """
        fig, ax = plt.subplots(figsize=(10, 8))
        plot_mesh(
            ax,
            self.vertex_coords,
            self.cell_vertices.to_lists(),
            show_nodes=show_nodes,
            show_cells=show_cells,
            boundary_faces=self.face_vertices.to_padded()[self.boundary_faces],
            title="Mesh Plot",
        )
        if show_normals:
            centers = self.face_centers[self.cell_faces.values]
            normals = self.local_face_normals.values
            scale = 0.25 * float(np.mean(self.face_areas))
            ax.quiver(
                centers[:, 0],
                centers[:, 1],
                normals[:, 0] * scale,
                normals[:, 1] * scale,
                angles="xy",
                scale_units="xy",
                scale=1.0,
                color="tab:red",
                width=0.002,
            )
        plt.savefig(filepath, dpi=300, bbox_inches="tight")
        plt.close(fig)
        log.info("Mesh plot saved to: %s", filepath)


class MeshBuilder:
    """
    Runs the derivation pipeline on `MeshEntities` and returns the mesh.

    The builder keeps the intermediate results of each stage to itself; the
    caller only ever sees a completely built and validated `UnstructuredMesh`
    or a `MeshConstructionError`.
    """

    def __init__(
        self, entities: MeshEntities, tolerances: Optional[MeshTolerances] = None
    ) -> None:
        self.entities = entities
        self.tolerances = tolerances or MeshTolerances()

    def build(self) -> UnstructuredMesh:
        ents = self.entities
        log.info(
            "Building mesh: %d vertices, %d edges, %d faces, %d cells",
            ents.num_vertices,
            ents.num_edges,
            ents.num_faces,
            ents.num_cells,
        )

        # 1. Loader output sanity checks
        self._check_entities()

        # 2. Topology: inverse maps, cell faces, face cells
        topology = self._derive_topology()

        # 3. Boundary classification
        log.info("Identifying boundary faces")
        boundary = classify_boundary(
            topology["face_cells"], ents.face_vertices, ents.num_vertices
        )
        log.debug("Boundary faces: %s", boundary.boundary_faces[:_PREVIEW_ROWS].tolist())

        # 4. Geometry
        geom = self._evaluate_geometry(topology)

        mesh = UnstructuredMesh(
            entities=ents,
            tolerances=self.tolerances,
            boundary=boundary,
            **topology,
            **geom,
        )
        self._warn_non_orthogonality(mesh)
        log.info("Mesh construction complete")
        return mesh

    # =========================================================================
    # Stages
    # =========================================================================

    def _check_entities(self) -> None:
        for kind, numbers in self.entities.numbering():
            validation.check_contiguous_numbering(kind, numbers)
        validation.check_entity_shapes(self.entities)

    def _derive_topology(self) -> Dict[str, object]:
        ents = self.entities
        n_vertices = ents.num_vertices

        log.info("Inverting CellVertex map")
        vertex_cells = invert_connectivity(ents.cell_vertices, n_vertices)
        self._preview("vertex", "cells", vertex_cells, ents.vertex_numbers)
        validation.check_all_mapped("vertex", "cell", vertex_cells)

        log.info("Inverting FaceVertex map")
        vertex_faces = invert_connectivity(ents.face_vertices, n_vertices)
        self._preview("vertex", "faces", vertex_faces, ents.vertex_numbers)
        validation.check_all_mapped("vertex", "face", vertex_faces)

        log.info("Inverting EdgeVertex map")
        vertex_edges = invert_connectivity(ents.edge_vertices, n_vertices)
        self._preview("vertex", "edges", vertex_edges, ents.vertex_numbers)
        validation.check_all_mapped("vertex", "edge", vertex_edges)

        log.info("Combining CellVertex with VertexFace to get CellFace map")
        cell_faces = build_cell_faces(ents.cell_vertices, vertex_faces)
        self._preview("cell", "faces", cell_faces, ents.cell_numbers)

        log.info("Inverting CellFace map")
        face_cells = invert_connectivity(cell_faces, ents.num_faces)
        self._preview("face", "cells", face_cells, ents.face_numbers)
        validation.check_all_mapped("face", "cell", face_cells)
        validation.check_manifold_faces(face_cells)

        pairs = _read_only(face_cell_pairs(face_cells))
        return {
            "vertex_cells": vertex_cells,
            "vertex_faces": vertex_faces,
            "vertex_edges": vertex_edges,
            "cell_faces": cell_faces,
            "face_cells": face_cells,
            "face_cell_pairs": pairs,
            "cell_neighbors": cell_neighbors(cell_faces, pairs),
        }

    def _evaluate_geometry(self, topology: Dict[str, object]) -> Dict[str, object]:
        ents = self.entities
        tol = self.tolerances
        coords = ents.vertex_coords
        cell_faces: RaggedArray = topology["cell_faces"]
        pairs: np.ndarray = topology["face_cell_pairs"]

        log.info("Evaluating cell centers")
        cell_centers = geometry.compute_cell_centers(coords, ents.cell_vertices)

        log.info("Evaluating face centers and areas")
        face_centers, face_areas = geometry.compute_face_centers_areas(
            coords, ents.face_vertices
        )
        validation.check_face_areas(face_areas, tol.face_area_eps)

        log.info("Evaluating face tangents and normals")
        tangents, normals = geometry.compute_face_tangents_normals(
            coords, ents.cell_vertices
        )
        validation.check_orientation(
            normals.values, tangents.values, cell_faces.row_ids, tol.orientation_eps
        )

        log.info("Evaluating cell volumes")
        cell_volumes = geometry.compute_cell_volumes(
            cell_faces, normals, face_centers, face_areas
        )
        validation.check_cell_volumes(cell_volumes, tol.cell_area_eps)

        log.info("Evaluating centroidal vectors")
        lvec = geometry.compute_centroidal_vectors(pairs, cell_centers, face_centers)

        log.info("Evaluating face deltas")
        positions = first_positions(cell_faces, ents.num_faces)
        deltas, skewness = geometry.compute_face_deltas(
            lvec, normals, tangents, positions
        )
        for face in range(min(_PREVIEW_ROWS, ents.num_faces)):
            log.debug(
                "face %d delta %.6e skewness %.6e",
                ents.face_numbers[face],
                deltas[face],
                skewness[face],
            )
        validation.check_face_deltas(deltas, tol.delta_eps)

        log.info("Evaluating face weights for interpolation from cells to faces")
        face_weights = geometry.compute_face_weights(pairs, cell_centers, face_centers)
        validation.check_finite("face", face_weights, np.arange(ents.num_faces))

        log.info("Evaluating vertex weights for interpolation from cells to vertices")
        vertex_weights = geometry.compute_vertex_weights(
            coords, topology["vertex_cells"], cell_centers
        )
        validation.check_finite(
            "vertex", vertex_weights.values, topology["vertex_cells"].row_ids
        )

        return {
            "cell_centers": _read_only(cell_centers),
            "cell_volumes": _read_only(cell_volumes),
            "face_centers": _read_only(face_centers),
            "face_areas": _read_only(face_areas),
            "local_face_tangents": tangents,
            "local_face_normals": normals,
            "centroidal_vectors": _read_only(lvec),
            "face_deltas": _read_only(deltas),
            "face_skewness": _read_only(skewness),
            "face_weights": _read_only(face_weights),
            "vertex_weights": vertex_weights,
        }

    # =========================================================================
    # Helpers
    # =========================================================================

    def _warn_non_orthogonality(self, mesh: UnstructuredMesh) -> None:
        if mesh.num_faces == 0:
            return
        angles = face_non_orthogonality(mesh.centroidal_vectors, mesh.face_deltas)
        worst = int(np.argmax(angles))
        limit = self.tolerances.non_orthogonality_warning_deg
        if angles[worst] > limit:
            warnings.warn(
                f"Face {worst} has non-orthogonality {angles[worst]:.1f} deg "
                f"(above {limit:.1f} deg); diffusive fluxes may be inaccurate."
            )

    @staticmethod
    def _preview(
        kind: str, target: str, relation: RaggedArray, numbers: np.ndarray
    ) -> None:
        if not log.isEnabledFor(logging.DEBUG):
            return
        rows = min(_PREVIEW_ROWS, len(relation))
        log.debug("%s to %s info for %d %ss out of %d", kind, target, rows, kind, len(relation))
        for i in range(rows):
            log.debug(
                "%s %d num_%s_%s %d %s %s",
                kind,
                numbers[i],
                kind,
                target,
                len(relation[i]),
                target,
                relation[i].tolist(),
            )
