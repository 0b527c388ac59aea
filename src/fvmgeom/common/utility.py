import numpy as np
from matplotlib.patches import Polygon, Rectangle
from matplotlib.collections import LineCollection, PatchCollection

ELEMENT_COLORS = {
    3: ("#87CEEB", "Triangle"),
    4: ("#90EE90", "Quad"),
    5: ("#FFD700", "Pentagon"),
    6: ("#FFA07A", "Hexagon"),
    "other": ("#D3D3D3", "Other"),
}


def polygon_area(points):
    """Calculates the area of a polygon using the shoelace formula."""
    x = points[:, 0]
    y = points[:, 1]
    return 0.5 * np.abs(np.dot(x, np.roll(y, 1)) - np.dot(y, np.roll(x, 1)))


def get_geometry_extent(nodes):
    """Computes the extent of the geometry based on node coordinates."""
    min_coords = np.min(nodes, axis=0)
    max_coords = np.max(nodes, axis=0)
    extent = np.linalg.norm(max_coords - min_coords)
    return extent if extent > 0 else 1.0


def _label_fontsize(length, geometry_extent, scale):
    return min(max(2, int(length / geometry_extent * scale)), 10)


def plot_mesh(
    ax,
    nodes,
    cells,
    show_nodes=False,
    show_cells=False,
    boundary_faces=None,
    title="Mesh",
):
    """
    Plots a 2D polygonal mesh, colored by cell shape.

    Args:
        ax: Matplotlib axes object.
        nodes (np.ndarray): Array of node coordinates (num_nodes, 2) or (num_nodes, 3).
        cells (list): List of lists, where each inner list contains the node indices for a cell.
        show_nodes (bool): Whether to display node labels.
        show_cells (bool): Whether to display cell labels.
        boundary_faces (np.ndarray, optional): Node index pairs (num_faces, 2)
            of the boundary faces, drawn as thick lines.
        title (str, optional): The title for the plot.
    """
    if nodes.shape[1] > 2:
        nodes = nodes[:, :2]
    geometry_extent = get_geometry_extent(nodes)

    patches = []
    for i, cell_conn in enumerate(cells):
        points = nodes[cell_conn]
        color, _ = ELEMENT_COLORS.get(len(cell_conn), ELEMENT_COLORS["other"])
        patches.append(Polygon(points, facecolor=color, edgecolor="k", alpha=0.7, lw=0.5))

        if show_cells:
            cell_fontsize = _label_fontsize(
                np.sqrt(polygon_area(points)), geometry_extent, 120
            )
            cell_center = np.mean(points, axis=0)
            ax.text(
                cell_center[0],
                cell_center[1],
                str(i),
                color="black",
                ha="center",
                va="center",
                fontsize=cell_fontsize,
                weight="bold",
                bbox=dict(
                    facecolor="white",
                    alpha=0.6,
                    edgecolor="none",
                    boxstyle="round,pad=0.2",
                ),
            )

    ax.add_collection(PatchCollection(patches, match_original=True))

    if boundary_faces is not None and len(boundary_faces) > 0:
        segments = nodes[np.asarray(boundary_faces, dtype=int)]
        ax.add_collection(LineCollection(segments, colors="tab:blue", linewidths=2.0))

    if show_nodes:
        lengths = [
            np.linalg.norm(np.roll(nodes[conn], -1, axis=0) - nodes[conn], axis=1).mean()
            for conn in cells
        ]
        node_fontsize = _label_fontsize(np.mean(lengths), geometry_extent, 100) if lengths else 8
        for i, (x, y) in enumerate(nodes):
            ax.text(
                x,
                y,
                str(i),
                color="darkred",
                ha="center",
                va="center",
                fontsize=node_fontsize,
                bbox=dict(
                    facecolor="yellow",
                    alpha=0.6,
                    edgecolor="none",
                    boxstyle="round,pad=0.1",
                ),
            )

    ax.set_title(title, fontsize=18, pad=20)
    ax.set_xlabel("X", fontsize=14, labelpad=8)
    ax.set_ylabel("Y", fontsize=14, labelpad=8)
    ax.grid(True, linestyle="--", alpha=0.5)
    ax.set_aspect("equal", adjustable="box")
    ax.autoscale_view()

    for spine in ax.spines.values():
        spine.set_visible(False)

    cell_counts = {}
    for cell in cells:
        _, label = ELEMENT_COLORS.get(len(cell), ELEMENT_COLORS["other"])
        cell_counts[label] = cell_counts.get(label, 0) + 1

    legend_handles = [
        Rectangle((0, 0), 1, 1, color=color, label=f"{label} (#{cell_counts[label]})")
        for color, label in ELEMENT_COLORS.values()
        if cell_counts.get(label, 0) > 0
    ]
    ax.legend(
        handles=legend_handles,
        loc="upper left",
        bbox_to_anchor=(1.0, 1.0),
        fontsize=14,
        frameon=False,
        ncol=1,
    )
