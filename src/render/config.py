"""
Parámetros de dibujo que se pasan explícitamente a la geometría de enlaces.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from PyQt6.QtCore import Qt


@dataclass(frozen=True)
class RenderConfig:
    # Fracciones de la longitud de enlace de referencia.
    multiple_bond_offset: float
    inner_line_trim: float
    wedge_width: float
    hash_count: int
    # Etiquetas de átomo (px).
    label_font_size: float
    label_char_width: float
    label_padding: float
    # Trazo.
    stroke_px: float
    dash_pattern: Tuple[float, float]
    cap_style: Qt.PenCapStyle
    join_style: Qt.PenJoinStyle


DEFAULT_RENDER_CONFIG = RenderConfig(
    multiple_bond_offset=0.2,
    inner_line_trim=0.1,
    wedge_width=0.2,
    hash_count=6,
    label_font_size=11.0,
    label_char_width=0.62,
    label_padding=2.0,
    stroke_px=2.0,
    dash_pattern=(3.0, 2.0),
    cap_style=Qt.PenCapStyle.RoundCap,
    join_style=Qt.PenJoinStyle.RoundJoin,
)
