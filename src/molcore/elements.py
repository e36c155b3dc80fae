"""Datos de referencia inmutables: elementos químicos y grupos funcionales.

Los átomos del grafo no copian estas propiedades: guardan una referencia a
la instancia compartida de `Element` (o `FunctionalGroup`) que devuelve la
tabla periódica.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Tuple, Union


@dataclass(frozen=True)
class Element:
    """Elemento químico de la tabla periódica."""
    symbol: str
    name: str
    atomic_number: int
    atomic_weight: float


@dataclass(frozen=True)
class FunctionalGroup:
    """Abreviatura (p. ej. "Me", "CO2H") que sustituye a varios átomos."""
    symbol: str
    components: Tuple[Tuple[str, int], ...] = field(default_factory=tuple)


ElementBase = Union[Element, FunctionalGroup]


# (símbolo, nombre, Z, peso atómico)
_ELEMENT_ROWS = [
    ("H", "Hydrogen", 1, 1.008),
    ("He", "Helium", 2, 4.0026),
    ("Li", "Lithium", 3, 6.94),
    ("Be", "Beryllium", 4, 9.0122),
    ("B", "Boron", 5, 10.81),
    ("C", "Carbon", 6, 12.011),
    ("N", "Nitrogen", 7, 14.007),
    ("O", "Oxygen", 8, 15.999),
    ("F", "Fluorine", 9, 18.998),
    ("Ne", "Neon", 10, 20.180),
    ("Na", "Sodium", 11, 22.990),
    ("Mg", "Magnesium", 12, 24.305),
    ("Al", "Aluminium", 13, 26.982),
    ("Si", "Silicon", 14, 28.085),
    ("P", "Phosphorus", 15, 30.974),
    ("S", "Sulfur", 16, 32.06),
    ("Cl", "Chlorine", 17, 35.45),
    ("Ar", "Argon", 18, 39.948),
    ("K", "Potassium", 19, 39.098),
    ("Ca", "Calcium", 20, 40.078),
    ("Sc", "Scandium", 21, 44.956),
    ("Ti", "Titanium", 22, 47.867),
    ("V", "Vanadium", 23, 50.942),
    ("Cr", "Chromium", 24, 51.996),
    ("Mn", "Manganese", 25, 54.938),
    ("Fe", "Iron", 26, 55.845),
    ("Co", "Cobalt", 27, 58.933),
    ("Ni", "Nickel", 28, 58.693),
    ("Cu", "Copper", 29, 63.546),
    ("Zn", "Zinc", 30, 65.38),
    ("Ga", "Gallium", 31, 69.723),
    ("Ge", "Germanium", 32, 72.630),
    ("As", "Arsenic", 33, 74.922),
    ("Se", "Selenium", 34, 78.971),
    ("Br", "Bromine", 35, 79.904),
    ("Kr", "Krypton", 36, 83.798),
    ("Rb", "Rubidium", 37, 85.468),
    ("Sr", "Strontium", 38, 87.62),
    ("Pd", "Palladium", 46, 106.42),
    ("Ag", "Silver", 47, 107.87),
    ("Cd", "Cadmium", 48, 112.41),
    ("Sn", "Tin", 50, 118.71),
    ("Sb", "Antimony", 51, 121.76),
    ("Te", "Tellurium", 52, 127.60),
    ("I", "Iodine", 53, 126.90),
    ("Xe", "Xenon", 54, 131.29),
    ("Cs", "Caesium", 55, 132.91),
    ("Ba", "Barium", 56, 137.33),
    ("Pt", "Platinum", 78, 195.08),
    ("Au", "Gold", 79, 196.97),
    ("Hg", "Mercury", 80, 200.59),
    ("Tl", "Thallium", 81, 204.38),
    ("Pb", "Lead", 82, 207.2),
    ("Bi", "Bismuth", 83, 208.98),
    ("U", "Uranium", 92, 238.03),
]

_GROUP_ROWS = [
    ("Me", (("C", 1), ("H", 3))),
    ("Et", (("C", 2), ("H", 5))),
    ("Pr", (("C", 3), ("H", 7))),
    ("iPr", (("C", 3), ("H", 7))),
    ("tBu", (("C", 4), ("H", 9))),
    ("Ph", (("C", 6), ("H", 5))),
    ("Bn", (("C", 7), ("H", 7))),
    ("OMe", (("C", 1), ("H", 3), ("O", 1))),
    ("OH", (("H", 1), ("O", 1))),
    ("CO2H", (("C", 1), ("H", 1), ("O", 2))),
    ("CHO", (("C", 1), ("H", 1), ("O", 1))),
    ("CN", (("C", 1), ("N", 1))),
    ("NO2", (("N", 1), ("O", 2))),
    ("CF3", (("C", 1), ("F", 3))),
    ("Ac", (("C", 2), ("H", 3), ("O", 1))),
    ("Boc", (("C", 5), ("H", 9), ("O", 2))),
    ("Ts", (("C", 7), ("H", 7), ("O", 2), ("S", 1))),
]


class PeriodicTable:
    """Tabla de búsqueda símbolo -> `Element`."""

    def __init__(self) -> None:
        self.elements: Dict[str, Element] = {
            symbol: Element(symbol, name, number, weight)
            for symbol, name, number, weight in _ELEMENT_ROWS
        }
        self.functional_groups: Dict[str, FunctionalGroup] = {
            symbol: FunctionalGroup(symbol, components)
            for symbol, components in _GROUP_ROWS
        }

    def __getitem__(self, symbol: str) -> Element:
        return self.elements[symbol]

    def __contains__(self, symbol: object) -> bool:
        return symbol in self.elements

    def __iter__(self) -> Iterator[Element]:
        return iter(self.elements.values())

    def get(self, symbol: str) -> Optional[Element]:
        return self.elements.get(symbol)

    def parse(self, text: str) -> Optional[ElementBase]:
        """Resuelve un texto de etiqueta a un grupo funcional o un elemento.

        Los grupos funcionales tienen prioridad, igual que en el editor
        (p. ej. "CN" es ciano y no carbono + nitrógeno).

        Args:
            text: Símbolo escrito por el usuario o leído de un archivo.

        Returns:
            La instancia compartida correspondiente o `None` si no existe.
        """
        if not text:
            return None
        group = self.functional_groups.get(text)
        if group is not None:
            return group
        return self.elements.get(text)


PERIODIC_TABLE = PeriodicTable()


def get_element(symbol: str) -> Element:
    """Atajo para `PERIODIC_TABLE[symbol]` (lanza `KeyError` si no existe)."""
    return PERIODIC_TABLE[symbol]
