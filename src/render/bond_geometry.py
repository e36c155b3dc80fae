"""
Geometría de dibujo de enlaces.

`bond_geometry` es una función pura de las posiciones de los átomos, el
orden, la estereoquímica y la longitud de enlace de referencia. El
resultado (`BondShape`) lo consume cualquier capa de dibujo: cada línea
lleva su propio estilo de trazo, por lo que los enlaces 1.5 se pintan como
dos trazos independientes.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

from PyQt6.QtCore import QPointF, Qt
from PyQt6.QtGui import QColor, QPainterPath, QPen, QPolygonF

from molcore.model import DEFAULT_BOND_LENGTH, BondDirection, BondStereo
from render.config import DEFAULT_RENDER_CONFIG, RenderConfig
from render.geom import (
    adjust_terminus,
    offset_segment,
    rotate_vector,
    shorten_segment,
    unit_vectors,
)
from render.wedge_geometry import compute_hash_strokes, compute_wedge_points

if TYPE_CHECKING:
    from molcore.model import Atom, Bond

logger = logging.getLogger(__name__)

Hull = Sequence[QPointF]


class BondShapeKind(str, Enum):
    LINES = "lines"
    WEDGE = "wedge"
    HATCH = "hatch"
    WAVY = "wavy"


class LineStyle(str, Enum):
    SOLID = "solid"
    DASHED = "dashed"


@dataclass
class BondLine:
    """Segmento de dibujo con su estilo de trazo."""
    start: QPointF
    end: QPointF
    style: LineStyle = LineStyle.SOLID

    @property
    def midpoint(self) -> QPointF:
        return QPointF((self.start.x() + self.end.x()) / 2.0, (self.start.y() + self.end.y()) / 2.0)

    @property
    def length(self) -> float:
        return math.hypot(self.end.x() - self.start.x(), self.end.y() - self.start.y())


@dataclass
class BondShape:
    """Resultado de la geometría de un enlace.

    `lines` son los trazos a pintar (para cuñas en trazos, los trazos
    transversales). `outline` es el polígono envolvente: el triángulo de la
    cuña, la polilínea ondulada o el cuadrilátero de las líneas paralelas.
    """
    kind: BondShapeKind
    lines: List[BondLine] = field(default_factory=list)
    outline: List[QPointF] = field(default_factory=list)

    def polygon(self) -> QPolygonF:
        return QPolygonF(self.outline)

    def to_path(self) -> QPainterPath:
        """Ruta de pintado; las cuñas macizas se cierran para rellenarlas."""
        path = QPainterPath()
        if self.kind is BondShapeKind.WEDGE:
            if self.outline:
                path.addPolygon(self.polygon())
                path.closeSubpath()
            return path
        if self.kind is BondShapeKind.WAVY:
            for i, point in enumerate(self.outline):
                if i == 0:
                    path.moveTo(point)
                else:
                    path.lineTo(point)
            return path
        for line in self.lines:
            path.moveTo(line.start)
            path.lineTo(line.end)
        return path


def line_pen(
    style: LineStyle = LineStyle.SOLID,
    config: RenderConfig = DEFAULT_RENDER_CONFIG,
    color: str = "#000000",
) -> QPen:
    """Pluma para pintar un `BondLine` con el trazo de `config`.

    El patrón de guiones se expresa en unidades del grosor del trazo,
    como espera `QPen.setDashPattern`.
    """
    pen = QPen(QColor(color), config.stroke_px)
    pen.setCapStyle(config.cap_style)
    pen.setJoinStyle(config.join_style)
    if style is LineStyle.DASHED:
        pen.setStyle(Qt.PenStyle.CustomDashLine)
        pen.setDashPattern(list(config.dash_pattern))
    return pen


def _trimmed(p0: QPointF, p1: QPointF, start_hull: Optional[Hull], end_hull: Optional[Hull]) -> Tuple[QPointF, QPointF]:
    return adjust_terminus(p0, p1, start_hull), adjust_terminus(p1, p0, end_hull)


def _line(
    p0: QPointF,
    p1: QPointF,
    start_hull: Optional[Hull],
    end_hull: Optional[Hull],
    style: LineStyle = LineStyle.SOLID,
) -> BondLine:
    a, b = _trimmed(p0, p1, start_hull, end_hull)
    return BondLine(a, b, style)


def _quad(first: BondLine, second: BondLine) -> List[QPointF]:
    return [first.start, first.end, second.end, second.start]


def side_from_centroid(start: QPointF, end: QPointF, centroid: QPointF) -> BondDirection:
    """Lado del enlace (según la normal (-uy, ux)) en el que cae el centroide."""
    vectors = unit_vectors(start, end)
    if vectors is None:
        return BondDirection.NONE
    _ux, _uy, nx, ny = vectors
    mx = (start.x() + end.x()) / 2.0
    my = (start.y() + end.y()) / 2.0
    dot = nx * (centroid.x() - mx) + ny * (centroid.y() - my)
    if abs(dot) <= 1e-9:
        return BondDirection.NONE
    return BondDirection.CLOCKWISE if dot > 0 else BondDirection.ANTICLOCKWISE


def single_bond_geometry(
    start: QPointF,
    end: QPointF,
    start_hull: Optional[Hull] = None,
    end_hull: Optional[Hull] = None,
    style: LineStyle = LineStyle.SOLID,
) -> BondShape:
    line = _line(start, end, start_hull, end_hull, style)
    return BondShape(BondShapeKind.LINES, [line], [line.start, line.end])


def double_bond_geometry(
    start: QPointF,
    end: QPointF,
    offset: float,
    inner_trim: float,
    side: BondDirection,
    start_hull: Optional[Hull] = None,
    end_hull: Optional[Hull] = None,
    subsidiary_style: LineStyle = LineStyle.SOLID,
) -> BondShape:
    """Dos líneas paralelas separadas `offset`.

    Con `side == NONE` ambas líneas se desplazan `offset / 2` a cada lado
    del eje. En otro caso la línea principal sigue el eje y la secundaria,
    acortada `inner_trim` por cada extremo, se desplaza hacia `side`.
    """
    if side is BondDirection.NONE:
        a0, a1 = offset_segment(start, end, offset / 2.0)
        b0, b1 = offset_segment(start, end, -offset / 2.0)
        first = _line(a0, a1, start_hull, end_hull)
        second = _line(b0, b1, start_hull, end_hull, subsidiary_style)
        return BondShape(BondShapeKind.LINES, [first, second], _quad(first, second))

    main = _line(start, end, start_hull, end_hull)
    s0, s1 = offset_segment(start, end, offset * int(side))
    s0, s1 = shorten_segment(s0, s1, inner_trim)
    second = _line(s0, s1, start_hull, end_hull, subsidiary_style)
    return BondShape(BondShapeKind.LINES, [main, second], _quad(main, second))


def crossed_double_geometry(
    start: QPointF,
    end: QPointF,
    offset: float,
    start_hull: Optional[Hull] = None,
    end_hull: Optional[Hull] = None,
) -> BondShape:
    """Doble enlace de configuración indeterminada: dos líneas cruzadas."""
    a0, a1 = offset_segment(start, end, offset / 2.0)
    b0, b1 = offset_segment(start, end, -offset / 2.0)
    first = _line(a0, b1, start_hull, end_hull)
    second = _line(b0, a1, start_hull, end_hull)
    return BondShape(BondShapeKind.LINES, [first, second], [a0, a1, b1, b0])


def triple_bond_geometry(
    start: QPointF,
    end: QPointF,
    offset: float,
    start_hull: Optional[Hull] = None,
    end_hull: Optional[Hull] = None,
) -> BondShape:
    main = _line(start, end, start_hull, end_hull)
    upper = _line(*offset_segment(start, end, offset), start_hull, end_hull)
    lower = _line(*offset_segment(start, end, -offset), start_hull, end_hull)
    return BondShape(BondShapeKind.LINES, [upper, main, lower], _quad(upper, lower))


def wedge_bond_geometry(
    start: QPointF,
    end: QPointF,
    width: float,
    hatched: bool,
    hash_count: int,
    start_hull: Optional[Hull] = None,
    end_hull: Optional[Hull] = None,
) -> BondShape:
    """Trapecio (triángulo) desde la punta en `start` hasta la base en `end`."""
    tip_point, base_point = _trimmed(start, end, start_hull, end_hull)
    trim_start = math.hypot(tip_point.x() - start.x(), tip_point.y() - start.y())
    trim_end = math.hypot(base_point.x() - end.x(), base_point.y() - end.y())
    tip, base1, base2 = compute_wedge_points(start, end, width, trim_start=trim_start, trim_end=trim_end)
    outline = [tip, base1, base2]
    if not hatched:
        return BondShape(BondShapeKind.WEDGE, [], outline)
    strokes = [BondLine(a, b) for a, b in compute_hash_strokes(tip, base1, base2, hash_count)]
    return BondShape(BondShapeKind.HATCH, strokes, outline)


def wavy_bond_geometry(
    start: QPointF,
    end: QPointF,
    offset: float,
    start_hull: Optional[Hull] = None,
    end_hull: Optional[Hull] = None,
) -> BondShape:
    """Zig-zag: una onda por cada `offset` de longitud, con brazos a +-60 grados."""
    p0, p1 = _trimmed(start, end, start_hull, end_hull)
    dx = p1.x() - p0.x()
    dy = p1.y() - p0.y()
    length = math.hypot(dx, dy)
    if length <= 1e-9 or offset <= 0:
        return single_bond_geometry(p0, p1)

    wiggles = max(1, int(math.ceil(length / offset)))
    half_x = dx / length * (length / wiggles / 2.0)
    half_y = dy / length * (length / wiggles / 2.0)
    left_x, left_y = rotate_vector(half_x, half_y, -60.0)
    right_x, right_y = rotate_vector(half_x, half_y, 60.0)

    points: List[QPointF] = [QPointF(p0)]
    last_x, last_y = p0.x(), p0.y()
    for _ in range(wiggles):
        points.append(QPointF(last_x + left_x, last_y + left_y))
        mid_x, mid_y = last_x + half_x, last_y + half_y
        points.append(QPointF(mid_x, mid_y))
        points.append(QPointF(mid_x + right_x, mid_y + right_y))
        last_x += half_x * 2.0
        last_y += half_y * 2.0
        points.append(QPointF(last_x, last_y))

    lines = [BondLine(points[i], points[i + 1]) for i in range(len(points) - 1)]
    return BondShape(BondShapeKind.WAVY, lines, points)


def bond_geometry(
    start: QPointF,
    end: QPointF,
    order_value: Optional[float],
    stereo: BondStereo,
    bond_length: float,
    config: RenderConfig = DEFAULT_RENDER_CONFIG,
    placement: BondDirection = BondDirection.NONE,
    ring_centroid: Optional[QPointF] = None,
    start_hull: Optional[Hull] = None,
    end_hull: Optional[Hull] = None,
) -> BondShape:
    """Calcula la geometría de dibujo de un enlace.

    Args:
        start: Posición del átomo inicial.
        end: Posición del átomo final.
        order_value: Orden numérico (1.5 aromático, 0.5 parcial...).
        stereo: Estereoquímica dibujada.
        bond_length: Longitud de enlace de referencia del modelo.
        config: Parámetros de dibujo.
        placement: Lado preferido de la segunda línea.
        ring_centroid: Centroide del anillo principal si el enlace es
            cíclico; tiene prioridad sobre `placement`.
        start_hull: Contorno de la etiqueta del átomo inicial.
        end_hull: Contorno de la etiqueta del átomo final.

    Returns:
        La forma calculada. Un orden no reconocido se dibuja como enlace
        simple.
    """
    offset = config.multiple_bond_offset * bond_length
    order = 1.0 if order_value is None else float(order_value)

    if stereo in (BondStereo.WEDGE, BondStereo.HATCH):
        width = config.wedge_width * bond_length * max(1.0, order)
        return wedge_bond_geometry(
            start,
            end,
            width,
            stereo is BondStereo.HATCH,
            config.hash_count,
            start_hull,
            end_hull,
        )

    if stereo is BondStereo.INDETERMINATE and order == 1.0:
        return wavy_bond_geometry(start, end, offset, start_hull, end_hull)

    if order <= 1.0:
        style = LineStyle.DASHED if order < 1.0 else LineStyle.SOLID
        return single_bond_geometry(start, end, start_hull, end_hull, style)

    if order in (1.5, 2.0):
        if order == 2.0 and stereo is BondStereo.INDETERMINATE:
            return crossed_double_geometry(start, end, offset, start_hull, end_hull)
        side = placement
        if ring_centroid is not None:
            side = side_from_centroid(start, end, ring_centroid)
        subsidiary = LineStyle.DASHED if order == 1.5 else LineStyle.SOLID
        return double_bond_geometry(
            start,
            end,
            offset,
            config.inner_line_trim * bond_length,
            side,
            start_hull,
            end_hull,
            subsidiary,
        )

    if order == 3.0:
        return triple_bond_geometry(start, end, offset, start_hull, end_hull)

    logger.debug("No dedicated geometry for bond order %s; drawing a single line", order)
    return single_bond_geometry(start, end, start_hull, end_hull)


def label_hull(center: QPointF, text: str, config: RenderConfig = DEFAULT_RENDER_CONFIG) -> Optional[List[QPointF]]:
    """Rectángulo aproximado que ocupa una etiqueta centrada en `center`.

    Returns:
        Las cuatro esquinas en sentido horario o `None` si no hay texto.
    """
    if not text:
        return None
    half_w = len(text) * config.label_font_size * config.label_char_width / 2.0 + config.label_padding
    half_h = config.label_font_size / 2.0 + config.label_padding
    x, y = center.x(), center.y()
    return [
        QPointF(x - half_w, y - half_h),
        QPointF(x + half_w, y - half_h),
        QPointF(x + half_w, y + half_h),
        QPointF(x - half_w, y + half_h),
    ]


def atom_label_hull(atom: "Atom", config: RenderConfig = DEFAULT_RENDER_CONFIG) -> Optional[List[QPointF]]:
    return label_hull(QPointF(atom.x, atom.y), atom.symbol_text, config)


def geometry_for_bond(bond: "Bond", config: RenderConfig = DEFAULT_RENDER_CONFIG) -> BondShape:
    """Geometría de un enlace del modelo, recortada contra las etiquetas.

    Usa la longitud de enlace del `Model` (o la de por defecto), el lado de
    colocación del enlace y, si es cíclico, el centroide de su anillo
    principal.
    """
    start_atom = bond.start_atom
    end_atom = bond.end_atom
    molecule = bond.parent
    model = molecule.model if molecule is not None else None
    bond_length = model.bond_length if model is not None else DEFAULT_BOND_LENGTH

    ring_centroid: Optional[QPointF] = None
    if bond.order_value in (1.5, 2.0):
        ring = bond.primary_ring
        if ring is not None:
            cx, cy = ring.centroid
            ring_centroid = QPointF(cx, cy)

    return bond_geometry(
        QPointF(start_atom.x, start_atom.y),
        QPointF(end_atom.x, end_atom.y),
        bond.order_value,
        bond.stereo,
        bond_length,
        config,
        placement=bond.placement,
        ring_centroid=ring_centroid,
        start_hull=atom_label_hull(start_atom, config),
        end_hull=atom_label_hull(end_atom, config),
    )
