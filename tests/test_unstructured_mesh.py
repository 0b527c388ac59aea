import unittest

import numpy as np
from scipy.sparse import csr_matrix

from fvmgeom.meshgen import create_structured_quad_entities
from fvmgeom.polymesh import MeshBuilder, MeshEntities, MeshTolerances, UnstructuredMesh
from fvmgeom.polymesh.geometry import compute_face_weights
from tests.common_meshes import (
    house_entities,
    pentagon_fan_entities,
    two_squares_entities,
    unit_square_entities,
)


class TestUnitSquare(unittest.TestCase):
    """Geometry of a single anticlockwise unit square."""

    @classmethod
    def setUpClass(cls):
        cls.mesh = UnstructuredMesh.from_entities(unit_square_entities())

    def test_area_and_center(self):
        self.assertTrue(np.allclose(self.mesh.cell_volumes, [1.0]))
        self.assertTrue(np.allclose(self.mesh.cell_centers[0], [0.5, 0.5, 0.0]))

    def test_faces(self):
        self.assertEqual(self.mesh.num_faces, 4)
        self.assertTrue(np.allclose(self.mesh.face_areas, 1.0))
        self.assertTrue(np.allclose(self.mesh.face_centers[0], [0.5, 0.0, 0.0]))
        self.assertTrue(np.all(self.mesh.is_boundary_face))
        self.assertTrue(np.all(self.mesh.is_boundary_vertex))

    def test_outward_normals(self):
        normals = self.mesh.cell_face_normals(0)
        expected = [[0, -1, 0], [1, 0, 0], [0, 1, 0], [-1, 0, 0]]
        self.assertTrue(np.allclose(normals, expected))

    def test_orientation(self):
        """normal x tangent points out of the plane for every local face."""
        cross = np.cross(self.mesh.cell_face_normals(0), self.mesh.cell_face_tangents(0))
        self.assertTrue(np.allclose(cross[:, 2], 1.0))

    def test_boundary_deltas_and_weights(self):
        self.assertTrue(np.allclose(self.mesh.face_deltas, 0.5))
        self.assertTrue(np.allclose(self.mesh.face_skewness, 0.0))
        self.assertTrue(np.allclose(self.mesh.face_weights, [[1.0, 0.0]] * 4))
        for v in range(self.mesh.num_vertices):
            cells, weights = self.mesh.vertex_cell_weights(v)
            self.assertEqual(cells.tolist(), [0])
            self.assertTrue(np.allclose(weights, [1.0]))

    def test_arrays_are_read_only(self):
        for array in (
            self.mesh.cell_volumes,
            self.mesh.face_centers,
            self.mesh.face_cell_pairs,
            self.mesh.local_face_normals.values,
            self.mesh.vertex_coords,
        ):
            self.assertFalse(array.flags.writeable)


class TestTwoSquares(unittest.TestCase):
    """Two unit squares sharing the face (1, 4)."""

    @classmethod
    def setUpClass(cls):
        cls.mesh = UnstructuredMesh.from_entities(two_squares_entities())
        cls.shared = int(np.flatnonzero(~cls.mesh.is_boundary_face)[0])

    def test_topology(self):
        mesh = self.mesh
        self.assertEqual(mesh.num_faces, 7)
        self.assertEqual(mesh.boundary_faces.size, 6)
        self.assertEqual(mesh.face_cell_pair(self.shared), (0, 1))
        self.assertEqual(mesh.face_vertices[self.shared].tolist(), [1, 4])
        self.assertEqual(mesh.vertex_cells[1].tolist(), [0, 1])
        self.assertEqual(mesh.vertex_cells[0].tolist(), [0])

    def test_local_lookup(self):
        mesh = self.mesh
        self.assertEqual(mesh.local_face_index(0, self.shared), 1)
        self.assertEqual(mesh.local_face_index(1, self.shared), 3)
        self.assertEqual(mesh.face_neighbor(0, 1), 1)
        self.assertEqual(mesh.face_neighbor(1, 3), 0)
        self.assertEqual(mesh.face_neighbor(0, 0), -1)
        with self.assertRaises(ValueError):
            mesh.local_face_index(1, 0)

    def test_opposite_normals_on_shared_face(self):
        n0 = self.mesh.cell_face_normal(0, self.shared)
        n1 = self.mesh.cell_face_normal(1, self.shared)
        self.assertTrue(np.allclose(n0, [1.0, 0.0, 0.0]))
        self.assertTrue(np.allclose(n1, -n0))

    def test_interior_face_geometry(self):
        mesh = self.mesh
        self.assertTrue(np.allclose(mesh.centroidal_vectors[self.shared], [1.0, 0.0, 0.0]))
        self.assertAlmostEqual(mesh.face_deltas[self.shared], 1.0)
        self.assertAlmostEqual(mesh.face_skewness[self.shared], 0.0)
        self.assertTrue(np.allclose(mesh.face_weights[self.shared], [0.5, 0.5]))

    def test_boundary_face_weights(self):
        weights = self.mesh.face_weights[self.mesh.boundary_faces]
        self.assertTrue(np.array_equal(weights[:, 0], np.ones(len(weights))))
        self.assertTrue(np.array_equal(weights[:, 1], np.zeros(len(weights))))

    def test_vertex_weights(self):
        cells, weights = self.mesh.vertex_cell_weights(1)
        self.assertEqual(cells.tolist(), [0, 1])
        self.assertTrue(np.allclose(weights, [0.5, 0.5]))

    def test_adjacency_matrix(self):
        adjacency = self.mesh.cell_adjacency_matrix()
        self.assertIsInstance(adjacency, csr_matrix)
        self.assertTrue(np.array_equal(adjacency.toarray(), [[0, 1], [1, 0]]))


class TestMixedCells(unittest.TestCase):
    def test_house_area(self):
        mesh = UnstructuredMesh.from_entities(house_entities())
        self.assertTrue(np.allclose(mesh.cell_volumes, [1.0, 0.25]))
        self.assertTrue(np.allclose(mesh.cell_centers[1], [0.5, 7.0 / 6.0, 0.0]))
        self.assertEqual(mesh.boundary_faces.size, 5)
        self.assertFalse(np.any(mesh.is_boundary_face[mesh.cell_faces[1][0]]))

    def test_pentagon_fan(self):
        mesh = UnstructuredMesh.from_entities(pentagon_fan_entities())
        self.assertEqual(mesh.num_cells, 5)
        self.assertEqual(mesh.num_faces, 10)
        self.assertFalse(mesh.is_boundary_vertex[0])
        self.assertTrue(np.all(mesh.is_boundary_vertex[1:]))
        self.assertEqual(mesh.vertex_cells[0].tolist(), [0, 1, 2, 3, 4])
        # Regular pentagon with unit circumradius
        self.assertAlmostEqual(mesh.cell_volumes.sum(), 2.5 * np.sin(2 * np.pi / 5))
        self.assertTrue(np.allclose(mesh.cell_volumes, mesh.cell_volumes[0]))
        self.assertTrue(np.allclose(mesh.vertex_weights[0], 0.2))


class TestInvariants(unittest.TestCase):
    """Properties every built mesh satisfies."""

    @classmethod
    def setUpClass(cls):
        cls.meshes = [
            UnstructuredMesh.from_entities(entities)
            for entities in (
                unit_square_entities(),
                two_squares_entities(),
                house_entities(),
                pentagon_fan_entities(),
            )
        ] + [UnstructuredMesh.create_structured_quad_mesh(4, 3, dx=0.5, dy=2.0)]

    def test_inverse_maps_agree(self):
        for mesh in self.meshes:
            for c, faces in enumerate(mesh.cell_faces):
                for f in faces:
                    self.assertIn(c, mesh.face_cells[f].tolist())
            for v, cells in enumerate(mesh.vertex_cells):
                for c in cells:
                    self.assertIn(v, mesh.cell_vertices[c].tolist())

    def test_boundary_consistency(self):
        for mesh in self.meshes:
            counts = mesh.face_cells.counts
            self.assertTrue(np.array_equal(mesh.is_boundary_face, counts == 1))
            self.assertTrue(np.all(counts <= 2))
            on_boundary = np.unique(mesh.face_vertices.to_padded()[mesh.boundary_faces])
            self.assertTrue(np.array_equal(np.flatnonzero(mesh.is_boundary_vertex), on_boundary))

    def test_weights_are_normalized(self):
        for mesh in self.meshes:
            sums = np.add.reduceat(mesh.vertex_weights.values, mesh.vertex_weights.offsets[:-1])
            self.assertTrue(np.allclose(sums, 1.0))
            self.assertTrue(np.allclose(mesh.face_weights.sum(axis=1), 1.0))

    def test_divergence_area_matches_shoelace(self):
        for mesh in self.meshes:
            for c, conn in enumerate(mesh.cell_vertices):
                xy = mesh.vertex_coords[conn, :2]
                rolled = np.roll(xy, -1, axis=0)
                area = 0.5 * np.sum(xy[:, 0] * rolled[:, 1] - rolled[:, 0] * xy[:, 1])
                self.assertAlmostEqual(mesh.cell_volumes[c], area)


class TestSmallScaleAndDegenerateCenters(unittest.TestCase):
    def test_micro_scale_grid(self):
        """Positive areas far below one square unit still build."""
        mesh = UnstructuredMesh.from_entities(
            create_structured_quad_entities(2, 2, 5e-7, 5e-7)
        )
        self.assertTrue(np.allclose(mesh.cell_volumes, 2.5e-13, rtol=1e-9, atol=0.0))
        self.assertTrue(np.all(mesh.face_deltas > 0.0))
        self.assertAlmostEqual(mesh.quality().min_max_volume_ratio, 1.0)

    def test_dart_center_on_own_vertex(self):
        """
        The vertex average of a dart cell lands on its notch vertex; that
        vertex takes its value from the dart alone.

            0
           /|\\
          / 2 \\
         / / \\ \\
        1 ----- 3
        """
        coords = np.array([[0.0, 2.0], [-1.0, -1.0], [0.0, 0.0], [1.0, -1.0]])
        entities = MeshEntities.from_cells(coords, [[0, 1, 2, 3], [1, 3, 2]])
        mesh = UnstructuredMesh.from_entities(entities)

        self.assertTrue(np.allclose(mesh.cell_centers[0], [0.0, 0.0, 0.0]))
        self.assertTrue(np.allclose(mesh.cell_volumes, [2.0, 1.0]))
        cells, weights = mesh.vertex_cell_weights(2)
        self.assertEqual(cells.tolist(), [0, 1])
        self.assertTrue(np.array_equal(weights, [1.0, 0.0]))
        self.assertTrue(np.all(np.isfinite(mesh.vertex_weights.values)))
        self.assertTrue(np.all(np.isfinite(mesh.face_weights)))

    def test_face_weight_with_center_on_face(self):
        pairs = np.array([[0, 1], [1, 0], [0, -1]])
        cell_centers = np.array([[0.0, 0.0, 0.0], [2.0, 0.0, 0.0]])
        face_centers = np.array([[0.0, 0.0, 0.0], [0.0, 0.0, 0.0], [1.0, 0.0, 0.0]])
        weights = compute_face_weights(pairs, cell_centers, face_centers)
        self.assertTrue(np.array_equal(weights, [[1.0, 0.0], [0.0, 1.0], [1.0, 0.0]]))


class TestBuilder(unittest.TestCase):
    def test_custom_tolerances(self):
        tolerances = MeshTolerances(cell_area_eps=1e-6)
        mesh = MeshBuilder(two_squares_entities(), tolerances).build()
        self.assertIs(mesh.tolerances, tolerances)

    def test_negative_tolerance_rejected(self):
        with self.assertRaises(ValueError):
            MeshTolerances(delta_eps=-1.0)

    def test_non_orthogonality_warning(self):
        # A sheared pair of cells whose centroidal vector is far off the normal
        coords = np.array(
            [[0.0, 0.0], [1.0, 0.0], [2.0, 0.0], [10.0, 1.0], [11.0, 1.0], [12.0, 1.0]]
        )
        entities = MeshEntities.from_cells(coords, [[0, 1, 4, 3], [1, 2, 5, 4]])
        with self.assertWarns(UserWarning):
            UnstructuredMesh.from_entities(entities)


if __name__ == "__main__":
    unittest.main()
