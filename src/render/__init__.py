"""Geometría de dibujo derivada del grafo molecular (sin escena Qt)."""

from render.bond_geometry import (
    BondLine,
    BondShape,
    BondShapeKind,
    LineStyle,
    atom_label_hull,
    bond_geometry,
    geometry_for_bond,
    line_pen,
)
from render.config import DEFAULT_RENDER_CONFIG, RenderConfig

__all__ = [
    "BondLine",
    "BondShape",
    "BondShapeKind",
    "DEFAULT_RENDER_CONFIG",
    "LineStyle",
    "RenderConfig",
    "atom_label_hull",
    "bond_geometry",
    "geometry_for_bond",
    "line_pen",
]
