"""
Utilidades geométricas para la geometría de enlaces y etiquetas.

Incluye funciones puras para ángulos, desplazamientos paralelos e
intersecciones de segmentos con contornos de etiquetas.
"""
from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence, Tuple

from PyQt6.QtCore import QPointF


def angle_deg(p0: QPointF, p1: QPointF) -> float:
    """Calcula el ángulo en grados (0-360) usando coordenadas matemáticas."""
    dx = p1.x() - p0.x()
    dy = -(p1.y() - p0.y())
    if dx == 0 and dy == 0:
        return 0.0
    return (math.degrees(math.atan2(dy, dx)) + 360.0) % 360.0


def endpoint_from_angle_len(p0: QPointF, theta_deg: float, length: float) -> QPointF:
    """Calcula el punto final desde un origen, ángulo y longitud."""
    rad = math.radians(theta_deg)
    dx = math.cos(rad) * length
    dy = -math.sin(rad) * length
    return QPointF(p0.x() + dx, p0.y() + dy)


def choose_optimal_direction(angles_deg: Iterable[float]) -> float:
    """Devuelve el punto medio del mayor hueco angular."""
    angles = sorted(a % 360.0 for a in angles_deg)
    if not angles:
        return 0.0
    if len(angles) == 1:
        return (angles[0] + 180.0) % 360.0

    best_gap = -1.0
    best_angle = 0.0
    for i in range(len(angles)):
        a1 = angles[i]
        a2 = angles[(i + 1) % len(angles)]
        gap = (a2 - a1) % 360.0
        if gap > best_gap:
            best_gap = gap
            best_angle = (a1 + gap / 2.0) % 360.0
    return best_angle


def unit_vectors(p0: QPointF, p1: QPointF) -> Optional[Tuple[float, float, float, float]]:
    """Vector unitario del segmento y su normal `(ux, uy, nx, ny)`.

    La normal es (-uy, ux): en coordenadas de lienzo (Y hacia abajo) queda a
    la derecha del sentido de avance, es decir, el lado horario.
    Devuelve `None` para segmentos degenerados.
    """
    dx = p1.x() - p0.x()
    dy = p1.y() - p0.y()
    length = math.hypot(dx, dy)
    if length <= 1e-9:
        return None
    ux = dx / length
    uy = dy / length
    return ux, uy, -uy, ux


def offset_segment(p0: QPointF, p1: QPointF, distance: float) -> Tuple[QPointF, QPointF]:
    """Segmento paralelo desplazado `distance` sobre la normal (-uy, ux)."""
    vectors = unit_vectors(p0, p1)
    if vectors is None:
        return QPointF(p0), QPointF(p1)
    _ux, _uy, nx, ny = vectors
    return (
        QPointF(p0.x() + nx * distance, p0.y() + ny * distance),
        QPointF(p1.x() + nx * distance, p1.y() + ny * distance),
    )


def shorten_segment(p0: QPointF, p1: QPointF, trim: float) -> Tuple[QPointF, QPointF]:
    """Acorta el segmento `trim` por cada extremo (sin invertirlo)."""
    vectors = unit_vectors(p0, p1)
    if vectors is None:
        return QPointF(p0), QPointF(p1)
    length = math.hypot(p1.x() - p0.x(), p1.y() - p0.y())
    trim = min(trim, length * 0.45)
    ux, uy, _nx, _ny = vectors
    return (
        QPointF(p0.x() + ux * trim, p0.y() + uy * trim),
        QPointF(p1.x() - ux * trim, p1.y() - uy * trim),
    )


def rotate_vector(dx: float, dy: float, degrees: float) -> Tuple[float, float]:
    rad = math.radians(degrees)
    cos_a = math.cos(rad)
    sin_a = math.sin(rad)
    return dx * cos_a - dy * sin_a, dx * sin_a + dy * cos_a


def segment_intersection(
    a: QPointF,
    b: QPointF,
    c: QPointF,
    d: QPointF,
    eps: float = 1e-9,
) -> Optional[float]:
    """Parámetro `t` sobre AB del cruce con el segmento CD.

    Args:
        a: Punto inicial del segmento AB.
        b: Punto final del segmento AB.
        c: Punto inicial del segmento CD.
        d: Punto final del segmento CD.
        eps: Tolerancia numérica.

    Returns:
        `t` en [0, 1] tal que el cruce es `a + t * (b - a)`, o `None` si
        los segmentos no se cortan o son paralelos.
    """
    rx = b.x() - a.x()
    ry = b.y() - a.y()
    sx = d.x() - c.x()
    sy = d.y() - c.y()
    denom = rx * sy - ry * sx
    if abs(denom) <= eps:
        return None
    qpx = c.x() - a.x()
    qpy = c.y() - a.y()
    t = (qpx * sy - qpy * sx) / denom
    u = (qpx * ry - qpy * rx) / denom
    if -eps <= t <= 1.0 + eps and -eps <= u <= 1.0 + eps:
        return min(1.0, max(0.0, t))
    return None


def point_in_polygon(point: QPointF, polygon: Sequence[QPointF]) -> bool:
    """Test par-impar de pertenencia de un punto a un polígono."""
    inside = False
    count = len(polygon)
    if count < 3:
        return False
    j = count - 1
    for i in range(count):
        pi = polygon[i]
        pj = polygon[j]
        if (pi.y() > point.y()) != (pj.y() > point.y()):
            cross_x = (pj.x() - pi.x()) * (point.y() - pi.y()) / (pj.y() - pi.y()) + pi.x()
            if point.x() < cross_x:
                inside = not inside
        j = i
    return inside


def adjust_terminus(point: QPointF, toward: QPointF, hull: Optional[Sequence[QPointF]]) -> QPointF:
    """Recorta un extremo de línea contra el contorno de una etiqueta.

    Si `point` queda dentro de `hull`, devuelve el punto donde el segmento
    `point -> toward` sale del contorno; en otro caso devuelve `point`.
    """
    if not hull or len(hull) < 3 or not point_in_polygon(point, hull):
        return QPointF(point)
    best_t: Optional[float] = None
    count = len(hull)
    for i in range(count):
        t = segment_intersection(point, toward, hull[i], hull[(i + 1) % count])
        if t is not None and (best_t is None or t > best_t):
            best_t = t
    if best_t is None:
        return QPointF(point)
    return QPointF(
        point.x() + (toward.x() - point.x()) * best_t,
        point.y() + (toward.y() - point.y()) * best_t,
    )
