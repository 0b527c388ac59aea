import io
import unittest
from contextlib import redirect_stdout

import numpy as np

from fvmgeom.polymesh import MeshQuality, UnstructuredMesh
from fvmgeom.polymesh.reporting import format_quality_summary
from tests.common_meshes import house_entities


class TestMeshQuality(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.grid = UnstructuredMesh.create_structured_quad_mesh(4, 2, dx=2.0, dy=0.5)
        cls.house = UnstructuredMesh.from_entities(house_entities())

    def test_cartesian_grid_is_orthogonal(self):
        quality = self.grid.quality()
        self.assertIsInstance(quality, MeshQuality)
        self.assertTrue(np.allclose(quality.face_non_orthogonality_values, 0.0))
        self.assertTrue(np.allclose(quality.cell_non_orthogonality_values, 0.0))
        self.assertTrue(np.allclose(quality.face_skewness_values, 0.0))
        self.assertAlmostEqual(quality.max_non_orthogonality, 0.0)

    def test_volume_and_aspect_ratio(self):
        quality = self.grid.quality()
        self.assertAlmostEqual(quality.min_max_volume_ratio, 1.0)
        self.assertTrue(np.allclose(quality.cell_aspect_ratio_values, 4.0))
        self.assertEqual(quality.connectivity_issues, [])

    def test_mixed_cells(self):
        quality = MeshQuality.from_mesh(self.house)
        self.assertAlmostEqual(quality.min_max_volume_ratio, 0.25)
        self.assertEqual(quality.cell_non_orthogonality_values.shape, (2,))
        self.assertEqual(quality.face_non_orthogonality_values.shape, (6,))
        self.assertTrue(np.all(quality.face_non_orthogonality_values < 90.0))
        self.assertAlmostEqual(quality.cell_aspect_ratio_values[1], np.sqrt(2.0))

    def test_quality_summary(self):
        text = format_quality_summary(self.grid.quality())
        self.assertIn("Mesh Quality Metrics", text)
        self.assertIn("Non-Orthogonality (deg)", text)
        self.assertIn("No connectivity issues found.", text)


class TestSummary(unittest.TestCase):
    def test_print_summary(self):
        mesh = UnstructuredMesh.create_structured_quad_mesh(3, 3)
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            mesh.print_summary()
        output = buffer.getvalue()
        self.assertIn("Mesh Analysis Report", output)
        self.assertIn("Number of Cells:", output)
        self.assertIn("Number of Faces:", output)
        self.assertIn("24", output)
        self.assertIn("bottom:", output)
        self.assertIn("First 9 of 9 Cells", output)
        self.assertIn("Mesh Quality Metrics", output)


if __name__ == "__main__":
    unittest.main()
