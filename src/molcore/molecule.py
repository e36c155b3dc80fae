"""Contenedor `Molecule`: dueño de átomos, enlaces, anillos y submoléculas.

La molécula es el árbitro de las referencias cruzadas por ID: resuelve
vecinos, mantiene la caché de anillos y se divide en fragmentos conexos
con `refresh`. Las moléculas hijas (grupos, sales, hidratos) cuelgan de
`molecules` y conocen a su padre mediante una referencia débil.
"""

from __future__ import annotations

import logging
import uuid
import weakref
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, TypeVar, Union

from molcore.elements import PERIODIC_TABLE, ElementBase
from molcore.errors import PreconditionError
from molcore.hull import BoundingBox, bounding_box, convex_hull
from molcore.model import (
    DEFAULT_BOND_LENGTH,
    Atom,
    Bond,
    BondDirection,
    BondOrder,
    BondStereo,
    Ring,
)
from molcore.rings import (
    RingStrategy,
    depth_first_traversal,
    perceive_rings,
    sort_rings_for_db_placement,
)

if TYPE_CHECKING:
    from molcore.container import Model

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Marcadores internos para distinguir "no se especificó" de "se desea borrar".
_UNSET = object()


class Molecule:
    """Fragmento molecular con su grafo y sus moléculas hijas."""

    def __init__(self, molecule_id: Optional[str] = None) -> None:
        """Inicializa una molécula vacía.

        Args:
            molecule_id: ID explícito; si falta se genera uno único.
        """
        self.id: str = molecule_id or uuid.uuid4().hex
        self.atoms: Dict[str, Atom] = {}
        self.bonds: Dict[str, Bond] = {}
        self.molecules: List[Molecule] = []
        self.names: List[Tuple[str, str]] = []
        self.formulas: List[Tuple[str, str]] = []
        self.errors: List[str] = []
        self.warnings: List[str] = []
        self.role: Optional[str] = None
        self.ring_strategy: RingStrategy = RingStrategy.HIGHEST_DEGREE
        self._count: Optional[int] = None
        self._parent: Optional[weakref.ReferenceType] = None
        self._rings: List[Ring] = []
        self._atom_rings: Dict[str, List[Ring]] = {}
        self._rings_dirty = False
        self._sorted_rings: Optional[List[Ring]] = None
        self._concise_formula: Optional[str] = None
        self._bounding_box: Optional[BoundingBox] = None
        self._next_atom_id = 1
        self._next_bond_id = 1

    def __repr__(self) -> str:
        return f"Molecule(id={self.id!r}, atoms={len(self.atoms)}, bonds={len(self.bonds)})"

    # ------------------------------------------------------------------
    # Jerarquía
    # ------------------------------------------------------------------
    @property
    def parent(self) -> Optional[Union["Molecule", "Model"]]:
        """Contenedor padre (otra molécula o el `Model`) o `None`."""
        return self._parent() if self._parent is not None else None

    @parent.setter
    def parent(self, container: Optional[Union["Molecule", "Model"]]) -> None:
        self._parent = None if container is None else weakref.ref(container)

    @property
    def model(self) -> Optional["Model"]:
        """`Model` raíz alcanzable subiendo por los padres."""
        from molcore.container import Model

        current = self.parent
        while current is not None and not isinstance(current, Model):
            current = current.parent
        return current

    @property
    def count(self) -> Optional[int]:
        """Multiplicidad de la molécula dentro de su padre (p. ej. 2 H2O)."""
        return self._count

    @count.setter
    def count(self, value: Optional[int]) -> None:
        if value is not None and not isinstance(self.parent, Molecule):
            raise PreconditionError("Count can only be set on a child molecule")
        self._count = value
        self._invalidate_formula()

    def add_molecule(self, child: "Molecule") -> "Molecule":
        """Cuelga una molécula hija.

        Side Effects:
            Reasigna `child.parent` e invalida la fórmula en caché.
        """
        child.parent = self
        self.molecules.append(child)
        self._invalidate_formula()
        self._bounding_box = None
        return child

    def remove_molecule(self, child: "Molecule") -> "Molecule":
        """Desengancha una molécula hija (lanza `ValueError` si no lo es)."""
        self.molecules.remove(child)
        child.parent = None
        self._invalidate_formula()
        self._bounding_box = None
        return child

    def all_atoms(self) -> Iterator[Atom]:
        """Átomos propios seguidos de los de las moléculas hijas."""
        yield from self.atoms.values()
        for child in self.molecules:
            yield from child.all_atoms()

    def all_bonds(self) -> Iterator[Bond]:
        yield from self.bonds.values()
        for child in self.molecules:
            yield from child.all_bonds()

    # ------------------------------------------------------------------
    # Edición del grafo
    # ------------------------------------------------------------------
    def _new_atom_id(self) -> str:
        while f"a{self._next_atom_id}" in self.atoms:
            self._next_atom_id += 1
        atom_id = f"a{self._next_atom_id}"
        self._next_atom_id += 1
        return atom_id

    def _new_bond_id(self) -> str:
        while f"b{self._next_bond_id}" in self.bonds:
            self._next_bond_id += 1
        bond_id = f"b{self._next_bond_id}"
        self._next_bond_id += 1
        return bond_id

    def add_atom(
        self,
        element: Union[ElementBase, str, None],
        x: float,
        y: float,
        atom_id: Optional[str] = None,
        formal_charge: Optional[int] = None,
        isotope_number: Optional[int] = None,
    ) -> Atom:
        """Crea y registra un átomo en la molécula.

        Args:
            element: Elemento, grupo funcional, símbolo en texto o `None`.
            x: Posición X en coordenadas del lienzo.
            y: Posición Y en coordenadas del lienzo.
            atom_id: ID explícito si se restaura desde un archivo.
            formal_charge: Carga formal (`None` si no se especifica).
            isotope_number: Número másico si se desea mostrar el isótopo.

        Returns:
            El átomo creado.

        Raises:
            PreconditionError: Si el ID ya existe en la molécula.

        Side Effects:
            Un símbolo desconocido deja el átomo sin elemento y se anota
            en `errors`. Los anillos se marcan como caducados.
        """
        if isinstance(element, str):
            resolved = PERIODIC_TABLE.parse(element)
            if resolved is None:
                message = f"Unknown element symbol {element!r}"
                logger.warning("%s in molecule %s", message, self.id)
                self.errors.append(message)
            element = resolved
        atom = Atom(
            id=atom_id or self._new_atom_id(),
            element=element,
            x=float(x),
            y=float(y),
            formal_charge=formal_charge,
            isotope_number=isotope_number,
        )
        return self.insert_atom(atom)

    def insert_atom(self, atom: Atom) -> Atom:
        """Registra un átomo ya construido (sin enlaces) en la molécula."""
        if atom.id in self.atoms:
            raise PreconditionError(f"Duplicate atom id {atom.id!r}")
        atom.bond_ids = [bond_id for bond_id in atom.bond_ids if bond_id in self.bonds]
        self._adopt_atom(atom)
        self._structure_changed()
        return atom

    def remove_atom(self, atom_id: str) -> Tuple[Atom, List[Bond]]:
        """Elimina un átomo y todos los enlaces conectados.

        Args:
            atom_id: Identificador del átomo a eliminar.

        Returns:
            Una tupla con el átomo eliminado y la lista de enlaces removidos.

        Side Effects:
            Modifica `atoms` y `bonds`; el átomo queda sin padre.
        """
        atom = self.atoms[atom_id]
        removed_bonds = [self.remove_bond(bond_id) for bond_id in list(atom.bond_ids)]
        del self.atoms[atom_id]
        atom.parent = None
        self._structure_changed()
        return atom, removed_bonds

    def add_bond(
        self,
        start_atom_id: str,
        end_atom_id: str,
        order: Union[BondOrder, str] = BondOrder.SINGLE,
        stereo: BondStereo = BondStereo.NONE,
        bond_id: Optional[str] = None,
        explicit_placement: Optional[BondDirection] = None,
    ) -> Bond:
        """Crea y registra un enlace entre dos átomos de esta molécula.

        Args:
            start_atom_id: ID del átomo inicial.
            end_atom_id: ID del átomo final.
            order: Orden de enlace (miembro de `BondOrder` o su etiqueta).
            stereo: Estereoquímica dibujada.
            bond_id: ID explícito si se restaura desde un archivo.
            explicit_placement: Lado fijado para la segunda línea.

        Returns:
            El enlace creado.

        Raises:
            PreconditionError: Si los extremos coinciden, no pertenecen a la
                molécula, ya están enlazados o el ID está repetido.
        """
        bond = Bond(
            id=bond_id or self._new_bond_id(),
            start_atom_id=start_atom_id,
            end_atom_id=end_atom_id,
            order=BondOrder.parse(order),
            stereo=stereo,
            explicit_placement=explicit_placement,
        )
        return self.insert_bond(bond)

    def insert_bond(self, bond: Bond) -> Bond:
        """Registra un enlace ya construido validando sus extremos."""
        if bond.start_atom_id == bond.end_atom_id:
            raise PreconditionError(f"Bond {bond.id!r} joins atom {bond.start_atom_id!r} to itself")
        for atom_id in bond.atom_ids:
            if atom_id not in self.atoms:
                raise PreconditionError(f"Atom {atom_id!r} does not belong to molecule {self.id}")
        if bond.id in self.bonds:
            raise PreconditionError(f"Duplicate bond id {bond.id!r}")
        if self.find_bond_between(bond.start_atom_id, bond.end_atom_id) is not None:
            raise PreconditionError(
                f"Atoms {bond.start_atom_id!r} and {bond.end_atom_id!r} are already bonded"
            )
        self._adopt_bond(bond)
        for atom_id in bond.atom_ids:
            self.atoms[atom_id].bond_ids.append(bond.id)
        self._structure_changed()
        return bond

    def remove_bond(self, bond_id: str) -> Bond:
        """Elimina un enlace y lo desvincula de sus dos átomos."""
        bond = self.bonds.pop(bond_id)
        for atom_id in bond.atom_ids:
            atom = self.atoms.get(atom_id)
            if atom is not None and bond_id in atom.bond_ids:
                atom.bond_ids.remove(bond_id)
        bond.parent = None
        self._structure_changed()
        return bond

    def move_atom(self, atom_id: str, x: float, y: float) -> None:
        """Actualiza la posición de un átomo en el lienzo."""
        atom = self.atoms[atom_id]
        atom.x = float(x)
        atom.y = float(y)
        self._geometry_changed()

    def update_atom(
        self,
        atom_id: str,
        element: Union[ElementBase, str, None, object] = _UNSET,
        formal_charge: Optional[int] | object = _UNSET,
        isotope_number: Optional[int] | object = _UNSET,
    ) -> Atom:
        """Actualiza propiedades químicas de un átomo.

        Los argumentos omitidos no se tocan; `None` borra el valor.
        """
        atom = self.atoms[atom_id]
        if element is not _UNSET:
            atom.element = PERIODIC_TABLE.parse(element) if isinstance(element, str) else element
        if formal_charge is not _UNSET:
            atom.formal_charge = formal_charge
        if isotope_number is not _UNSET:
            atom.isotope_number = isotope_number
        self._invalidate_formula()
        return atom

    def update_bond(
        self,
        bond_id: str,
        order: Union[BondOrder, str, None] = None,
        stereo: Optional[BondStereo] = None,
        explicit_placement: Optional[BondDirection] | object = _UNSET,
    ) -> Bond:
        """Actualiza orden, estereoquímica o colocación de un enlace.

        Side Effects:
            Un cambio de orden reordena los anillos para dobles enlaces y
            avisa a los observadores de colocación de los enlaces cíclicos.
        """
        bond = self.bonds[bond_id]
        if order is not None:
            bond.order = BondOrder.parse(order)
            self._sorted_rings = None
            self._invalidate_formula()
            for ring in self._rings:
                for ring_bond in ring.bonds:
                    ring_bond.notify_placement_changed()
        if stereo is not None:
            bond.stereo = stereo
        if explicit_placement is not _UNSET:
            bond.explicit_placement = explicit_placement
        bond.notify_placement_changed()
        return bond

    def find_bond_between(self, a1_id: str, a2_id: str) -> Optional[Bond]:
        """Busca un enlace existente entre dos átomos."""
        atom = self.atoms.get(a1_id)
        if atom is None:
            return None
        for bond_id in atom.bond_ids:
            bond = self.bonds[bond_id]
            if bond.connects(a1_id, a2_id):
                return bond
        return None

    def neighbours(self, atom_id: str) -> List[Atom]:
        """Átomos enlazados a `atom_id`, en el orden de sus enlaces."""
        atom = self.atoms[atom_id]
        return [self.atoms[self.bonds[bond_id].other_atom_id(atom_id)] for bond_id in atom.bond_ids]

    def degree(self, atom_id: str) -> int:
        return len(self.atoms[atom_id].bond_ids)

    def move_all_atoms(self, dx: float, dy: float) -> None:
        """Traslada todos los átomos, incluidos los de las moléculas hijas."""
        for atom in self.atoms.values():
            atom.x += dx
            atom.y += dy
        for child in self.molecules:
            child.move_all_atoms(dx, dy)
        self._geometry_changed()

    def reposition_all(self, x: float, y: float) -> None:
        """Traslada la molécula de modo que la esquina superior izquierda quede en (x, y)."""
        box = self.bounding_box
        if box is None:
            return
        self.move_all_atoms(x - box.left, y - box.top)

    def projection(self, getter: Callable[[Atom], T]) -> Dict[str, T]:
        """Diccionario ID de átomo -> valor derivado, en orden de inserción."""
        return {atom_id: getter(atom) for atom_id, atom in self.atoms.items()}

    # ------------------------------------------------------------------
    # Anillos
    # ------------------------------------------------------------------
    @property
    def theoretical_rings(self) -> int:
        """Número ciclomático: enlaces - átomos + 1."""
        return len(self.bonds) - len(self.atoms) + 1

    @property
    def has_rings(self) -> bool:
        return self.theoretical_rings > 0

    @property
    def rings_calculated(self) -> bool:
        return not self._rings_dirty

    @property
    def rings(self) -> List[Ring]:
        """Anillos percibidos; se recalculan si la estructura cambió."""
        if self._rings_dirty:
            self.rebuild_rings()
        return list(self._rings)

    def rings_for_atom(self, atom_id: str) -> List[Ring]:
        if self._rings_dirty:
            self.rebuild_rings()
        return list(self._atom_rings.get(atom_id, ()))

    @property
    def sorted_rings(self) -> List[Ring]:
        """Anillos ordenados para la colocación de dobles enlaces."""
        if self._rings_dirty:
            self.rebuild_rings()
        if self._sorted_rings is None:
            self._sorted_rings = sort_rings_for_db_placement(self._rings, self._atom_rings)
        return list(self._sorted_rings)

    def rebuild_rings(self, strategy: Optional[RingStrategy] = None) -> List[Ring]:
        """Recalcula los anillos de la molécula.

        Args:
            strategy: Estrategia de consumo del conjunto de trabajo; por
                defecto la de `ring_strategy`.

        Returns:
            Los anillos encontrados.

        Side Effects:
            Sustituye la caché de anillos y avisa a los enlaces cíclicos de
            que su colocación pudo cambiar.
        """
        if strategy is not None:
            self.ring_strategy = strategy
        rings = perceive_rings(self, self.ring_strategy) if self.has_rings else []
        atom_rings: Dict[str, List[Ring]] = {}
        for ring in rings:
            for atom_id in ring.atom_ids:
                atom_rings.setdefault(atom_id, []).append(ring)
        self._rings = rings
        self._atom_rings = atom_rings
        self._rings_dirty = False
        self._sorted_rings = None
        logger.debug("Molecule %s: %d ring(s) perceived", self.id, len(rings))
        for ring in rings:
            for bond in ring.bonds:
                bond.notify_placement_changed()
        return list(rings)

    # ------------------------------------------------------------------
    # Conectividad
    # ------------------------------------------------------------------
    def refresh(self) -> List["Molecule"]:
        """Separa los fragmentos no conexos y limpia las hijas vacías.

        El primer fragmento (el que contiene el primer átomo) se queda en
        esta molécula; cada fragmento restante pasa a una molécula nueva
        añadida al padre. Después se refrescan las hijas y se descartan las
        que quedaron sin átomos ni hijas.

        Returns:
            Las moléculas nuevas creadas, incluidas las de las hijas.

        Raises:
            PreconditionError: Si la molécula no tiene átomos ni hijas.
        """
        if not self.atoms and not self.molecules:
            raise PreconditionError(f"Molecule {self.id} has no atoms to refresh")
        spun_off: List[Molecule] = []
        if self.atoms:
            spun_off.extend(self.refresh_from(next(iter(self.atoms))))
        for child in list(self.molecules):
            if not child.atoms and not child.molecules:
                self.remove_molecule(child)
                continue
            spun_off.extend(child.refresh())
        return spun_off

    def refresh_from(self, seed_id: str) -> List["Molecule"]:
        """Reconstruye la molécula con el componente conexo de `seed_id`.

        Args:
            seed_id: Átomo semilla; debe pertenecer a la molécula.

        Returns:
            Moléculas nuevas con el resto de componentes.

        Raises:
            PreconditionError: Si la semilla no pertenece a la molécula.

        Side Effects:
            Reasigna el padre de cada átomo y enlace visitado y añade las
            moléculas nuevas al contenedor padre (si lo hay).
        """
        if seed_id not in self.atoms:
            raise PreconditionError(f"Atom {seed_id!r} does not belong to molecule {self.id}")

        all_atoms = dict(self.atoms)
        all_bonds = dict(self.bonds)
        pending_atoms = dict(all_atoms)
        pending_bonds = dict(all_bonds)
        self.atoms = {}
        self.bonds = {}

        def neighbours_of(atom: Atom) -> List[Atom]:
            return [all_atoms[all_bonds[bond_id].other_atom_id(atom.id)] for bond_id in atom.bond_ids]

        def is_unprocessed(atom: Atom) -> bool:
            return atom.id in pending_atoms

        def claimer(target: Molecule) -> Callable[[Atom], None]:
            def claim(atom: Atom) -> None:
                del pending_atoms[atom.id]
                target._adopt_atom(atom)
                for bond_id in atom.bond_ids:
                    bond = pending_bonds.pop(bond_id, None)
                    if bond is not None:
                        target._adopt_bond(bond)
            return claim

        depth_first_traversal(all_atoms[seed_id], claimer(self), is_unprocessed, neighbours_of)
        self._structure_changed()
        self.rebuild_rings()

        fragments: List[Molecule] = []
        while pending_atoms:
            fragment = Molecule()
            fragment.ring_strategy = self.ring_strategy
            start = next(iter(pending_atoms.values()))
            depth_first_traversal(start, claimer(fragment), is_unprocessed, neighbours_of)
            fragment.rebuild_rings()
            fragments.append(fragment)

        container = self.parent
        if container is not None:
            for fragment in fragments:
                container.add_molecule(fragment)
        if fragments:
            logger.debug("Molecule %s split into %d extra fragment(s)", self.id, len(fragments))
        return fragments

    def _adopt_atom(self, atom: Atom) -> None:
        self.atoms[atom.id] = atom
        atom.parent = self

    def _adopt_bond(self, bond: Bond) -> None:
        self.bonds[bond.id] = bond
        bond.parent = self

    def transfer_to(self, target: "Molecule", atom_ids: Iterable[str], bond_ids: Iterable[str]) -> None:
        """Mueve átomos y enlaces (los mismos objetos) a otra molécula.

        Raises:
            KeyError: Si algún ID no pertenece a esta molécula.
        """
        for atom_id in atom_ids:
            target._adopt_atom(self.atoms.pop(atom_id))
        for bond_id in bond_ids:
            target._adopt_bond(self.bonds.pop(bond_id))
        self._structure_changed()
        target._structure_changed()

    def replace_molecules(self, children: Iterable["Molecule"]) -> None:
        """Sustituye la lista de hijas; las que salen quedan sin padre."""
        children = list(children)
        for old in self.molecules:
            if old not in children:
                old.parent = None
        for child in children:
            child.parent = self
        self.molecules = children
        self._invalidate_formula()
        self._geometry_changed()

    # ------------------------------------------------------------------
    # Copias
    # ------------------------------------------------------------------
    def clone(self) -> "Molecule":
        """Copia profunda con los mismos IDs; la copia no tiene padre.

        Se copian átomos (posición, elemento, isótopo y carga), enlaces
        (orden, estereoquímica y colocación explícita), nombres, fórmulas
        y moléculas hijas. Los anillos se recalculan en la copia.
        """
        copy = Molecule(self.id)
        copy.ring_strategy = self.ring_strategy
        copy.role = self.role
        copy.names = list(self.names)
        copy.formulas = list(self.formulas)
        copy._next_atom_id = self._next_atom_id
        copy._next_bond_id = self._next_bond_id
        for atom in self.atoms.values():
            copy._adopt_atom(
                Atom(
                    id=atom.id,
                    element=atom.element,
                    x=atom.x,
                    y=atom.y,
                    formal_charge=atom.formal_charge,
                    isotope_number=atom.isotope_number,
                    bond_ids=list(atom.bond_ids),
                )
            )
        for bond in self.bonds.values():
            copy._adopt_bond(
                Bond(
                    id=bond.id,
                    start_atom_id=bond.start_atom_id,
                    end_atom_id=bond.end_atom_id,
                    order=bond.order,
                    stereo=bond.stereo,
                    explicit_placement=bond.explicit_placement,
                )
            )
        for child in self.molecules:
            child_copy = child.clone()
            copy.add_molecule(child_copy)
            child_copy._count = child._count
        copy.rebuild_rings()
        return copy

    # ------------------------------------------------------------------
    # Datos derivados
    # ------------------------------------------------------------------
    @property
    def bounding_box(self) -> Optional[BoundingBox]:
        """Caja de contorno de todos los átomos (con hijas), en caché."""
        if self._bounding_box is None:
            box = bounding_box(atom.position for atom in self.atoms.values())
            for child in self.molecules:
                child_box = child.bounding_box
                if child_box is None:
                    continue
                box = child_box if box is None else box.union(child_box)
            self._bounding_box = box
        return self._bounding_box

    @property
    def convex_hull(self) -> List[Atom]:
        """Átomos del casco convexo (cadena monótona de Andrew)."""
        ordered = sorted(self.atoms.values(), key=lambda atom: (atom.x, -atom.y))
        return convex_hull(ordered, key=lambda atom: atom.position)

    @property
    def mean_bond_length(self) -> float:
        """Longitud media de enlace, o la del modelo si no hay enlaces."""
        if self.bonds:
            return sum(bond.length for bond in self.bonds.values()) / len(self.bonds)
        model = self.model
        return model.bond_length if model is not None else DEFAULT_BOND_LENGTH

    @property
    def concise_formula(self) -> str:
        """Fórmula de Hill compacta (en caché hasta el siguiente cambio)."""
        from chemcalc.formula import format_formula, molecular_formula

        if self._concise_formula is None:
            self._concise_formula = format_formula(molecular_formula(self))
        return self._concise_formula

    @concise_formula.setter
    def concise_formula(self, value: Optional[str]) -> None:
        self._concise_formula = value

    def calculated_formula(self) -> str:
        """Fórmula espaciada al estilo CML (p. ej. "C 6 H 6")."""
        from chemcalc.formula import format_formula_spaced, molecular_formula

        return format_formula_spaced(molecular_formula(self))

    # ------------------------------------------------------------------
    # Invalidación de cachés
    # ------------------------------------------------------------------
    def _structure_changed(self) -> None:
        self._rings_dirty = True
        self._sorted_rings = None
        self._geometry_changed()
        self._invalidate_formula()

    def _geometry_changed(self) -> None:
        current: Optional[Union[Molecule, "Model"]] = self
        while isinstance(current, Molecule):
            current._bounding_box = None
            current = current.parent

    def _invalidate_formula(self) -> None:
        current: Optional[Union[Molecule, "Model"]] = self
        while isinstance(current, Molecule):
            current._concise_formula = None
            current = current.parent
