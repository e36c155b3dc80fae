"""
Utilidades geométricas para enlaces en cuña y en trazos.
"""
from __future__ import annotations

import math
from typing import List, Tuple

from PyQt6.QtCore import QPointF


def compute_wedge_points(
    p0: QPointF,
    p1: QPointF,
    width: float,
    *,
    trim_start: float = 0.0,
    trim_end: float = 0.0,
) -> Tuple[QPointF, QPointF, QPointF]:
    """Calcula los puntos de una cuña (tip, base1, base2).

    Args:
        p0: Punto del vértice (punta de la cuña).
        p1: Punto del centro de la base.
        width: Ancho total de la base.
        trim_start: Recorte desde la punta (evita solapar etiquetas).
        trim_end: Recorte desde la base.

    Returns:
        Tupla `(tip, base1, base2)`; `base1` queda en el lado de la normal
        (-uy, ux) del vector de enlace.
    """
    dx = p1.x() - p0.x()
    dy = p1.y() - p0.y()
    length = math.hypot(dx, dy)
    if length <= 1e-9:
        return QPointF(p0), QPointF(p0), QPointF(p0)
    ux = dx / length
    uy = dy / length
    tip = QPointF(p0.x() + ux * trim_start, p0.y() + uy * trim_start)
    base_x = p1.x() - ux * trim_end
    base_y = p1.y() - uy * trim_end
    nx = -uy
    ny = ux
    half_w = width / 2.0
    base1 = QPointF(base_x + nx * half_w, base_y + ny * half_w)
    base2 = QPointF(base_x - nx * half_w, base_y - ny * half_w)
    return tip, base1, base2


def compute_hash_strokes(
    tip: QPointF,
    base1: QPointF,
    base2: QPointF,
    count: int,
) -> List[Tuple[QPointF, QPointF]]:
    """Trazos transversales de un enlace en trazos dentro de la cuña.

    Cada trazo une los dos lados de la cuña a una fracción `i / count` del
    camino entre la punta y la base, de modo que crecen hacia la base.
    """
    strokes: List[Tuple[QPointF, QPointF]] = []
    count = max(1, count)
    for i in range(1, count + 1):
        t = i / count
        left = QPointF(tip.x() + (base1.x() - tip.x()) * t, tip.y() + (base1.y() - tip.y()) * t)
        right = QPointF(tip.x() + (base2.x() - tip.x()) * t, tip.y() + (base2.y() - tip.y()) * t)
        strokes.append((left, right))
    return strokes
