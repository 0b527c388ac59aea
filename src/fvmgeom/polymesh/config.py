# -*- coding: utf-8 -*-
"""Numerical tolerances used by the mesh validation stages."""

from dataclasses import asdict, dataclass
from typing import Dict

import numpy as np


@dataclass(frozen=True)
class MeshTolerances:
    """
    Thresholds applied while validating a mesh under construction.

    Attributes:
        face_area_eps (float): Faces shorter than this are degenerate.
        cell_area_eps (float): Cell areas must exceed this value.
        orientation_eps (float): Allowed deviation of the normal/tangent cross
            product from +1.
        delta_eps (float): Face deltas must exceed this value.
        non_orthogonality_warning_deg (float): A warning is issued when the
            largest face non-orthogonality angle exceeds this value.
    """

    face_area_eps: float = 10.0 * np.finfo(float).tiny
    cell_area_eps: float = 10.0 * np.finfo(float).tiny
    orientation_eps: float = 1e-10
    delta_eps: float = 1e-10
    non_orthogonality_warning_deg: float = 70.0

    def __post_init__(self):
        for name, value in asdict(self).items():
            if not value >= 0.0:
                raise ValueError(f"Tolerance '{name}' must be non-negative, got {value}")

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)
