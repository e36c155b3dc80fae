"""Geometría plana pura sobre tuplas `(x, y)`.

Se usa desde el modelo (centroides de anillos, envolventes convexas y
cajas de contorno) sin depender de la capa de dibujo.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Sequence, Tuple, TypeVar

Point = Tuple[float, float]
T = TypeVar("T")


@dataclass(frozen=True)
class BoundingBox:
    """Rectángulo alineado con los ejes (coordenadas de lienzo)."""
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def center(self) -> Point:
        return ((self.left + self.right) / 2.0, (self.top + self.bottom) / 2.0)

    def union(self, other: "BoundingBox") -> "BoundingBox":
        return BoundingBox(
            min(self.left, other.left),
            min(self.top, other.top),
            max(self.right, other.right),
            max(self.bottom, other.bottom),
        )


def centroid(points: Iterable[Point]) -> Point:
    """Media aritmética de los puntos; `(0, 0)` si no hay ninguno."""
    xs = 0.0
    ys = 0.0
    count = 0
    for x, y in points:
        xs += x
        ys += y
        count += 1
    if count == 0:
        return (0.0, 0.0)
    return (xs / count, ys / count)


def bounding_box(points: Iterable[Point]) -> BoundingBox | None:
    pts = list(points)
    if not pts:
        return None
    xs = [p[0] for p in pts]
    ys = [p[1] for p in pts]
    return BoundingBox(min(xs), min(ys), max(xs), max(ys))


def cross(o: Point, a: Point, b: Point) -> float:
    """Producto vectorial z de OA x OB."""
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def convex_hull(items: Sequence[T], key: Callable[[T], Point]) -> List[T]:
    """Envolvente convexa por cadena monótona de Andrew.

    Args:
        items: Objetos ya ordenados por X ascendente e Y descendente.
        key: Función que devuelve la posición de cada objeto.

    Returns:
        Los objetos del casco en orden de recorrido, sin repetir el primero.
        Con menos de tres objetos se devuelven tal cual.
    """
    if len(items) < 3:
        return list(items)

    def build(sequence: Iterable[T]) -> List[T]:
        chain: List[T] = []
        for item in sequence:
            while len(chain) >= 2 and cross(key(chain[-2]), key(chain[-1]), key(item)) <= 0:
                chain.pop()
            chain.append(item)
        return chain

    lower = build(items)
    upper = build(reversed(items))
    return lower[:-1] + upper[:-1]
