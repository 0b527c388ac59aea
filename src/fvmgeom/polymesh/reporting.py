# -*- coding: utf-8 -*-
"""
This module provides reporting functions for mesh analysis and quality.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import numpy as np

if TYPE_CHECKING:
    from .quality import MeshQuality
    from .unstructured_mesh import UnstructuredMesh

# Number of entities listed in the per-entity tables.
PREVIEW_ROWS = 10


def format_mesh_summary(
    mesh: "UnstructuredMesh", quality: Optional["MeshQuality"] = None
) -> str:
    """
    Formats the full mesh report: counts, bounding box, geometry statistics,
    boundary patches, a preview of the first cells and the quality metrics.
    """
    report = []
    report.append("\n" + "=" * 80)
    report.append(f"{'Mesh Analysis Report':^80}")
    report.append("=" * 80)
    report.append(_format_general_info(mesh))
    report.append(_format_bounding_box(mesh))
    report.append(_format_geometry(mesh))
    report.append(_format_boundary_patches(mesh))
    report.append(_format_cell_preview(mesh))
    if quality is not None:
        report.append(format_quality_summary(quality))
    report.append("\n" + "=" * 80)
    return "\n".join(filter(None, report))


def format_quality_summary(quality: "MeshQuality") -> str:
    """
    Formats a summary of the computed mesh quality metrics.
    """
    if not quality:
        return "Quality metrics not computed."

    report = []
    report.append(f"\n{'--- Mesh Quality Metrics ---':^80}")
    report.append(_format_metric_table(quality))
    report.append(_format_connectivity_issues(quality))
    return "\n".join(report)


def _format_general_info(mesh: "UnstructuredMesh") -> str:
    lines = [f"\n{'--- General Information ---':^80}\n"]
    lines.append(f"  {'Dimension:':<25} {mesh.dimension}D")
    lines.append(f"  {'Number of Vertices:':<25} {mesh.num_vertices}")
    lines.append(f"  {'Number of Edges:':<25} {mesh.num_edges}")
    lines.append(f"  {'Number of Faces:':<25} {mesh.num_faces}")
    lines.append(f"  {'Number of Cells:':<25} {mesh.num_cells}")
    lines.append(f"  {'Boundary Faces:':<25} {mesh.boundary_faces.size}")
    lines.append(
        f"  {'Boundary Vertices:':<25} {int(np.count_nonzero(mesh.is_boundary_vertex))}"
    )
    return "\n".join(lines)


def _format_bounding_box(mesh: "UnstructuredMesh") -> Optional[str]:
    if mesh.num_vertices == 0:
        return None
    min_coords = np.min(mesh.vertex_coords, axis=0)
    max_coords = np.max(mesh.vertex_coords, axis=0)
    lines = [f"\n{'--- Geometric Bounding Box ---':^80}\n"]
    lines.append(f"  {'X Range:':<25} {min_coords[0]:.4f} to {max_coords[0]:.4f}")
    lines.append(f"  {'Y Range:':<25} {min_coords[1]:.4f} to {max_coords[1]:.4f}")
    return "\n".join(lines)


def _format_geometry(mesh: "UnstructuredMesh") -> Optional[str]:
    if mesh.num_cells == 0:
        return None
    lines = [f"\n{'--- Cell and Face Geometry ---':^80}\n"]
    lines.append(f"  {'Total Area:':<25} {np.sum(mesh.cell_volumes):.6e}")
    lines.append(f"\n  {'Metric':<25} {'Min':>15} {'Max':>15} {'Average':>15}")
    lines.append(f"  {'-'*24} {'-'*15} {'-'*15} {'-'*15}")
    lines.append(_format_stat_line("Cell Area", mesh.cell_volumes))
    lines.append(_format_stat_line("Face Area", mesh.face_areas))
    lines.append(_format_stat_line("Face Delta", mesh.face_deltas))
    return "\n".join(lines)


def _format_stat_line(name: str, data: np.ndarray) -> str:
    """Formats a statistics line for a given dataset."""
    if data.size == 0:
        return f"  {name:<25} {'-':>15} {'-':>15} {'-':>15}"
    return (
        f"  {name:<25} {np.min(data):>15.4e} {np.max(data):>15.4e} "
        f"{np.mean(data):>15.4e}"
    )


def _format_boundary_patches(mesh: "UnstructuredMesh") -> Optional[str]:
    patches = mesh.boundary_patches()
    if not patches:
        return None
    lines = [f"\n{'--- Boundary Patches ---':^80}\n"]
    for name, faces in patches.items():
        lines.append(f"    - {str(name) + ':':<20} {faces.size} faces")
    return "\n".join(lines)


def _format_cell_preview(mesh: "UnstructuredMesh") -> Optional[str]:
    """Lists vertices, faces and neighbors of the first cells."""
    rows = min(PREVIEW_ROWS, mesh.num_cells)
    if rows == 0:
        return None
    lines = [f"\n{f'--- First {rows} of {mesh.num_cells} Cells ---':^80}\n"]
    lines.append(f"  {'Cell':>8} {'Area':>12}  {'Vertices':<18} {'Faces':<18} Neighbors")
    for ci in range(rows):
        lines.append(
            f"  {mesh.entities.cell_numbers[ci]:>8} {mesh.cell_volumes[ci]:>12.4e}  "
            f"{str(mesh.cell_vertices[ci].tolist()):<18} "
            f"{str(mesh.cell_faces[ci].tolist()):<18} "
            f"{mesh.cell_neighbors[ci].tolist()}"
        )
    return "\n".join(lines)


def _format_metric_table(quality: "MeshQuality") -> str:
    """Formats the table of quality metrics."""
    lines = []
    lines.append(f"  {'Metric':<25} {'Min':>15} {'Max':>15} {'Average':>15}")
    lines.append(f"  {'-'*24} {'-'*15} {'-'*15} {'-'*15}")
    lines.append(
        f"  {'Min/Max Volume Ratio':<25} {quality.min_max_volume_ratio:>15.4f} "
        f"{'-':>15} {'-':>15}"
    )
    lines.append(
        _format_metric_row(
            "Non-Orthogonality (deg)", quality.face_non_orthogonality_values
        )
    )
    lines.append(_format_metric_row("Skewness", quality.face_skewness_values))
    lines.append(
        _format_metric_row(
            "Aspect Ratio", quality.cell_aspect_ratio_values, filter_finite=True
        )
    )
    return "\n".join(filter(None, lines))


def _format_metric_row(
    name: str, values: np.ndarray, filter_finite: bool = False
) -> Optional[str]:
    """Formats a single row in the metric table."""
    if filter_finite:
        values = values[np.isfinite(values)]
    if values.size == 0:
        return None
    return (
        f"  {name:<25} {np.min(values):>15.4f} {np.max(values):>15.4f} "
        f"{np.mean(values):>15.4f}"
    )


def _format_connectivity_issues(quality: "MeshQuality") -> str:
    """Formats any connectivity issues found."""
    lines = []
    lines.append(f"\n{'--- Connectivity Check ---':^80}")
    if quality.connectivity_issues:
        lines.append("  Issues Found:")
        for issue in quality.connectivity_issues:
            lines.append(f"    - {issue}")
    else:
        lines.append("  No connectivity issues found.")
    return "\n".join(lines)
