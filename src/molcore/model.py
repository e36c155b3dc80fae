"""Modelos de datos base del grafo molecular.

Este módulo concentra las estructuras que representan los nodos (átomos),
las aristas (enlaces) y los ciclos (anillos) del grafo. Las referencias
cruzadas se expresan con IDs: un `Bond` conoce los IDs de sus átomos y un
`Atom` conoce los IDs de sus enlaces. La molécula propietaria (accesible
mediante `parent`, una referencia débil) resuelve esos IDs.
"""

from __future__ import annotations

import math
import weakref
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional, Tuple

from chemcalc.valence import implicit_h_count
from molcore.elements import Element, ElementBase
from molcore.hull import Point, centroid

if TYPE_CHECKING:
    from molcore.molecule import Molecule

# Longitud de enlace por defecto del editor (px) cuando no hay enlaces.
DEFAULT_BOND_LENGTH = 40.0


class BondOrder(str, Enum):
    """Órdenes de enlace con las etiquetas de CML."""
    ZERO = "hbond"
    PARTIAL01 = "partial01"
    SINGLE = "S"
    PARTIAL12 = "partial12"
    AROMATIC = "A"
    DOUBLE = "D"
    PARTIAL23 = "partial23"
    TRIPLE = "T"

    @property
    def numeric(self) -> float:
        """Valor numérico del orden para aritmética de valencias."""
        return _ORDER_VALUES[self]

    @classmethod
    def parse(cls, text: Optional[str]) -> "BondOrder":
        """Convierte una etiqueta (o un número en texto) a `BondOrder`.

        Las etiquetas desconocidas se tratan como enlace simple.
        """
        if text is None:
            return cls.SINGLE
        if isinstance(text, cls):
            return text
        token = str(text).strip()
        for member in cls:
            if member.value == token:
                return member
        aliases = {"1": cls.SINGLE, "2": cls.DOUBLE, "3": cls.TRIPLE, "1.5": cls.AROMATIC, "0": cls.ZERO}
        return aliases.get(token, cls.SINGLE)


_ORDER_VALUES: Dict[BondOrder, float] = {
    BondOrder.ZERO: 0.0,
    BondOrder.PARTIAL01: 0.5,
    BondOrder.SINGLE: 1.0,
    BondOrder.PARTIAL12: 1.5,
    BondOrder.AROMATIC: 1.5,
    BondOrder.DOUBLE: 2.0,
    BondOrder.PARTIAL23: 2.5,
    BondOrder.TRIPLE: 3.0,
}


class BondStereo(str, Enum):
    """Descriptores estereoquímicos dibujados sobre el enlace."""
    NONE = "none"
    WEDGE = "wedge"
    HATCH = "hatch"
    CIS = "cis"
    TRANS = "trans"
    INDETERMINATE = "indeterminate"

    @property
    def code(self) -> str:
        """Código de una letra usado por CML."""
        return _STEREO_CODES[self]

    @classmethod
    def from_code(cls, code: Optional[str]) -> "BondStereo":
        for member, member_code in _STEREO_CODES.items():
            if member_code == code:
                return member
        return cls.NONE


_STEREO_CODES: Dict[BondStereo, str] = {
    BondStereo.NONE: "N",
    BondStereo.WEDGE: "W",
    BondStereo.HATCH: "H",
    BondStereo.CIS: "C",
    BondStereo.TRANS: "T",
    BondStereo.INDETERMINATE: "S",
}


class BondDirection(IntEnum):
    """Lado preferido para la segunda línea de un enlace doble."""
    ANTICLOCKWISE = -1
    NONE = 0
    CLOCKWISE = 1


# Ranking de tamaños de anillo para la colocación de dobles enlaces.
RING_PRIORITIES = {6: 1, 5: 2, 7: 3, 4: 4, 3: 5}


def _ref(obj) -> Optional[weakref.ReferenceType]:
    return None if obj is None else weakref.ref(obj)


@dataclass(eq=False)
class Atom:
    """Representa un átomo (nodo) del grafo molecular."""
    id: str
    element: Optional[ElementBase]
    x: float
    y: float
    formal_charge: Optional[int] = None
    isotope_number: Optional[int] = None
    bond_ids: List[str] = field(default_factory=list)
    _parent: Optional[weakref.ReferenceType] = field(default=None, init=False, repr=False)

    @property
    def parent(self) -> Optional["Molecule"]:
        """Molécula propietaria (referencia no propietaria) o `None`."""
        return self._parent() if self._parent is not None else None

    @parent.setter
    def parent(self, molecule: Optional["Molecule"]) -> None:
        self._parent = _ref(molecule)

    @property
    def position(self) -> Point:
        return (self.x, self.y)

    @position.setter
    def position(self, value: Point) -> None:
        self.x, self.y = float(value[0]), float(value[1])

    @property
    def symbol(self) -> str:
        return self.element.symbol if self.element is not None else ""

    @property
    def symbol_text(self) -> str:
        """Etiqueta visible: los carbonos "normales" no se rotulan."""
        if self.element is None:
            return ""
        if isinstance(self.element, Element) and self.element.symbol == "C":
            if self.degree > 0 and not self.formal_charge and self.isotope_number is None:
                return ""
        return self.element.symbol

    @property
    def degree(self) -> int:
        return len(self.bond_ids)

    @property
    def bonds(self) -> List["Bond"]:
        molecule = self.parent
        if molecule is None:
            return []
        return [molecule.bonds[bond_id] for bond_id in self.bond_ids]

    @property
    def neighbours(self) -> List["Atom"]:
        molecule = self.parent
        if molecule is None:
            return []
        return molecule.neighbours(self.id)

    @property
    def rings(self) -> List["Ring"]:
        molecule = self.parent
        if molecule is None:
            return []
        return molecule.rings_for_atom(self.id)

    @property
    def is_in_ring(self) -> bool:
        return bool(self.rings)

    @property
    def bond_order_sum(self) -> float:
        return sum(bond.order_value for bond in self.bonds)

    @property
    def implicit_hydrogen_count(self) -> int:
        """Hidrógenos implícitos según la valencia por defecto del elemento."""
        return implicit_h_count(self)


@dataclass(eq=False)
class Bond:
    """Representa un enlace (arista) entre dos átomos distintos."""
    id: str
    start_atom_id: str
    end_atom_id: str
    order: BondOrder = BondOrder.SINGLE
    stereo: BondStereo = BondStereo.NONE
    explicit_placement: Optional[BondDirection] = None
    placement_observers: List[Callable[["Bond"], None]] = field(default_factory=list, repr=False)
    _parent: Optional[weakref.ReferenceType] = field(default=None, init=False, repr=False)

    @property
    def parent(self) -> Optional["Molecule"]:
        return self._parent() if self._parent is not None else None

    @parent.setter
    def parent(self, molecule: Optional["Molecule"]) -> None:
        self._parent = _ref(molecule)

    @property
    def order_value(self) -> float:
        return self.order.numeric

    @property
    def atom_ids(self) -> Tuple[str, str]:
        return (self.start_atom_id, self.end_atom_id)

    @property
    def start_atom(self) -> Atom:
        return self._resolve(self.start_atom_id)

    @property
    def end_atom(self) -> Atom:
        return self._resolve(self.end_atom_id)

    def _resolve(self, atom_id: str) -> Atom:
        molecule = self.parent
        if molecule is None:
            raise LookupError(f"Bond {self.id} is not attached to a molecule")
        return molecule.atoms[atom_id]

    def other_atom_id(self, atom_id: str) -> str:
        if atom_id == self.start_atom_id:
            return self.end_atom_id
        if atom_id == self.end_atom_id:
            return self.start_atom_id
        raise KeyError(atom_id)

    def other_atom(self, atom_id: str) -> Atom:
        return self._resolve(self.other_atom_id(atom_id))

    def connects(self, a1_id: str, a2_id: str) -> bool:
        return {self.start_atom_id, self.end_atom_id} == {a1_id, a2_id}

    @property
    def vector(self) -> Point:
        start = self.start_atom
        end = self.end_atom
        return (end.x - start.x, end.y - start.y)

    @property
    def length(self) -> float:
        dx, dy = self.vector
        return math.hypot(dx, dy)

    @property
    def angle(self) -> float:
        """Ángulo del vector de enlace en grados (coordenadas de lienzo)."""
        dx, dy = self.vector
        return math.degrees(math.atan2(dy, dx))

    @property
    def midpoint(self) -> Point:
        start = self.start_atom
        end = self.end_atom
        return ((start.x + end.x) / 2.0, (start.y + end.y) / 2.0)

    @property
    def rings(self) -> List["Ring"]:
        molecule = self.parent
        if molecule is None:
            return []
        return [
            ring
            for ring in molecule.rings_for_atom(self.start_atom_id)
            if self.end_atom_id in ring
        ]

    def is_cyclic(self) -> bool:
        return bool(self.rings)

    @property
    def primary_ring(self) -> Optional["Ring"]:
        """Anillo que gobierna la colocación del doble enlace.

        Es el primero, según el orden de colocación de dobles enlaces de la
        molécula, entre los anillos que contienen el enlace.
        """
        rings = self.rings
        if not rings:
            return None
        if len(rings) == 1:
            return rings[0]
        ordering = self.parent.sorted_rings
        ranked = [ring for ring in ordering if ring in rings]
        if ranked:
            return ranked[0]
        return max(rings, key=lambda ring: (ring.priority > 0, -ring.priority))

    @property
    def placement(self) -> BondDirection:
        """Lado de la segunda línea de un enlace múltiple.

        Returns:
            `explicit_placement` si está fijado; si el enlace es cíclico, el
            lado del centroide de su anillo principal; en otro caso el lado
            con más sustituyentes. `NONE` significa dibujo simétrico.
        """
        if self.explicit_placement is not None:
            return self.explicit_placement
        if self.parent is None:
            return BondDirection.NONE
        ring = self.primary_ring
        if ring is not None:
            return self.side_of(ring.centroid)
        score = 0
        for atom_id in self.atom_ids:
            for neighbour in self.parent.neighbours(atom_id):
                if neighbour.id in self.atom_ids:
                    continue
                score += int(self.side_of(neighbour.position))
        if score > 0:
            return BondDirection.CLOCKWISE
        if score < 0:
            return BondDirection.ANTICLOCKWISE
        return BondDirection.NONE

    def side_of(self, point: Point) -> BondDirection:
        """Indica a qué lado del enlace queda un punto."""
        dx, dy = self.vector
        length = math.hypot(dx, dy)
        if length <= 1e-9:
            return BondDirection.NONE
        nx = -dy / length
        ny = dx / length
        mx, my = self.midpoint
        dot = nx * (point[0] - mx) + ny * (point[1] - my)
        if abs(dot) <= 1e-9:
            return BondDirection.NONE
        return BondDirection.CLOCKWISE if dot > 0 else BondDirection.ANTICLOCKWISE

    def notify_placement_changed(self) -> None:
        """Avisa a los observadores (capa de dibujo) de que la geometría caducó."""
        for observer in list(self.placement_observers):
            observer(self)


class Ring:
    """Ciclo simple del grafo (conjunto de átomos y enlaces derivados)."""

    def __init__(self, atom_ids: Iterable[str], parent: Optional["Molecule"] = None) -> None:
        self.atom_ids: frozenset[str] = frozenset(atom_ids)
        self._parent = _ref(parent)

    def __repr__(self) -> str:
        return f"Ring({self.unique_id!r})"

    def __len__(self) -> int:
        return len(self.atom_ids)

    def __contains__(self, atom_id: object) -> bool:
        return atom_id in self.atom_ids

    @property
    def parent(self) -> Optional["Molecule"]:
        return self._parent() if self._parent is not None else None

    @parent.setter
    def parent(self, molecule: Optional["Molecule"]) -> None:
        self._parent = _ref(molecule)

    @property
    def size(self) -> int:
        return len(self.atom_ids)

    @property
    def unique_id(self) -> str:
        return "|".join(sorted(self.atom_ids))

    @property
    def priority(self) -> int:
        """1 para anillos de 6, luego 5, 7, 4 y 3; 0 para el resto."""
        return RING_PRIORITIES.get(self.size, 0)

    @property
    def atoms(self) -> List[Atom]:
        molecule = self.parent
        if molecule is None:
            return []
        return [molecule.atoms[atom_id] for atom_id in self.traversal_order()]

    @property
    def bonds(self) -> List[Bond]:
        molecule = self.parent
        if molecule is None:
            return []
        return [
            bond
            for bond in molecule.bonds.values()
            if bond.start_atom_id in self.atom_ids and bond.end_atom_id in self.atom_ids
        ]

    @property
    def centroid(self) -> Point:
        molecule = self.parent
        if molecule is None:
            return (0.0, 0.0)
        return centroid(molecule.atoms[atom_id].position for atom_id in self.atom_ids)

    def traversal_order(self) -> List[str]:
        """IDs de los átomos recorriendo el ciclo.

        Si el conjunto no forma un ciclo simple (p. ej. hay cuerdas) se
        devuelve el orden de IDs ordenado.
        """
        molecule = self.parent
        ordered_ids = sorted(self.atom_ids)
        if molecule is None or len(ordered_ids) < 3:
            return ordered_ids
        adjacency = {
            atom_id: sorted(
                nbr.id for nbr in molecule.neighbours(atom_id) if nbr.id in self.atom_ids
            )
            for atom_id in ordered_ids
        }
        if any(len(nbrs) != 2 for nbrs in adjacency.values()):
            return ordered_ids
        start = ordered_ids[0]
        order = [start, adjacency[start][0]]
        while len(order) < len(ordered_ids):
            prev, current = order[-2], order[-1]
            nbrs = adjacency[current]
            nxt = nbrs[0] if nbrs[1] == prev else nbrs[1]
            if nxt == start:
                break
            order.append(nxt)
        if len(order) != len(ordered_ids):
            return ordered_ids
        return order
