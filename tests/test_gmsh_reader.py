import os
import tempfile
import unittest

import gmsh
import numpy as np

from fvmgeom.polymesh import UnstructuredMesh, read_gmsh


def write_rectangle_msh(path, width=2.0, height=1.0, mesh_size=0.25, recombine=False,
                        overlapping_group=False):
    """Meshes a rectangle with one physical group per side and writes it to `path`."""
    gmsh.initialize()
    gmsh.option.setNumber("General.Verbosity", 0)
    try:
        gmsh.model.add("rectangle")
        corners = [(0.0, 0.0), (width, 0.0), (width, height), (0.0, height)]
        points = [gmsh.model.geo.addPoint(x, y, 0, mesh_size) for x, y in corners]
        lines = [gmsh.model.geo.addLine(points[i], points[(i + 1) % 4]) for i in range(4)]
        loop = gmsh.model.geo.addCurveLoop(lines)
        surface = gmsh.model.geo.addPlaneSurface([loop])
        gmsh.model.geo.synchronize()

        for tag, (line, name) in enumerate(zip(lines, ["bottom", "right", "top", "left"]), 1):
            gmsh.model.addPhysicalGroup(1, [line], tag)
            gmsh.model.setPhysicalName(1, tag, name)
        if overlapping_group:
            gmsh.model.addPhysicalGroup(1, [lines[0]], 5)
        gmsh.model.addPhysicalGroup(2, [surface], 10)

        if recombine:
            gmsh.model.mesh.setRecombine(2, surface)
        gmsh.model.mesh.generate(2)
        gmsh.write(path)
    finally:
        gmsh.finalize()


class TestGmshReader(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.tmp_dir = tempfile.TemporaryDirectory()
        cls.tri_file = os.path.join(cls.tmp_dir.name, "rect_tri.msh")
        cls.quad_file = os.path.join(cls.tmp_dir.name, "rect_quad.msh")
        write_rectangle_msh(cls.tri_file)
        write_rectangle_msh(cls.quad_file, recombine=True)

    @classmethod
    def tearDownClass(cls):
        cls.tmp_dir.cleanup()

    def test_read_triangles(self):
        entities = read_gmsh(self.tri_file)
        self.assertGreater(entities.num_cells, 0)
        self.assertTrue(np.all(entities.cell_vertices.counts == 3))
        self.assertEqual(
            entities.patch_names, {"bottom": 1, "right": 2, "top": 3, "left": 4}
        )

    def test_round_trip_geometry(self):
        mesh = UnstructuredMesh.from_gmsh(self.tri_file)
        self.assertAlmostEqual(mesh.cell_volumes.sum(), 2.0)
        self.assertTrue(np.all(mesh.cell_volumes > 0.0))
        perimeter = mesh.face_areas[mesh.boundary_faces].sum()
        self.assertAlmostEqual(perimeter, 6.0)

    def test_boundary_patches(self):
        mesh = UnstructuredMesh.from_gmsh(self.tri_file)
        patches = mesh.boundary_patches()
        self.assertEqual(set(patches), {"bottom", "right", "top", "left"})
        self.assertEqual(sum(faces.size for faces in patches.values()), mesh.boundary_faces.size)
        top = mesh.face_centers[patches["top"]]
        self.assertTrue(np.allclose(top[:, 1], 1.0))
        self.assertAlmostEqual(mesh.face_areas[patches["left"]].sum(), 1.0)

    def test_read_quads(self):
        mesh = UnstructuredMesh.from_gmsh(self.quad_file)
        self.assertTrue(np.any(mesh.cell_vertices.counts == 4))
        self.assertAlmostEqual(mesh.cell_volumes.sum(), 2.0)

    def test_conflicting_physical_groups(self):
        path = os.path.join(self.tmp_dir.name, "rect_conflict.msh")
        write_rectangle_msh(path, overlapping_group=True)
        with self.assertRaises(ValueError):
            read_gmsh(path)


if __name__ == "__main__":
    unittest.main()
