from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from PyQt6.QtCore import QPointF
from PyQt6.QtGui import QUndoCommand

from molcore.container import Model
from molcore.elements import Element
from molcore.model import Atom, Bond, BondDirection, BondOrder, BondStereo
from molcore.molecule import Molecule
from render.geom import angle_deg, choose_optimal_direction, endpoint_from_angle_len

UNSET = object()
_STEREO_BONDS = {BondStereo.WEDGE, BondStereo.HATCH}


@dataclass(frozen=True)
class _AtomSnapshot:
    id: str
    element: object
    x: float
    y: float
    formal_charge: Optional[int]
    isotope_number: Optional[int]

    @classmethod
    def of(cls, atom: Atom) -> "_AtomSnapshot":
        return cls(atom.id, atom.element, atom.x, atom.y, atom.formal_charge, atom.isotope_number)

    def restore(self, molecule: Molecule) -> Atom:
        return molecule.add_atom(
            self.element,
            self.x,
            self.y,
            atom_id=self.id,
            formal_charge=self.formal_charge,
            isotope_number=self.isotope_number,
        )


@dataclass(frozen=True)
class _BondSnapshot:
    id: str
    start_atom_id: str
    end_atom_id: str
    order: BondOrder
    stereo: BondStereo
    explicit_placement: Optional[BondDirection]

    @classmethod
    def of(cls, bond: Bond) -> "_BondSnapshot":
        return cls(
            bond.id,
            bond.start_atom_id,
            bond.end_atom_id,
            bond.order,
            bond.stereo,
            bond.explicit_placement,
        )

    def restore(self, molecule: Molecule) -> Bond:
        return molecule.add_bond(
            self.start_atom_id,
            self.end_atom_id,
            self.order,
            self.stereo,
            bond_id=self.id,
            explicit_placement=self.explicit_placement,
        )


def _neighbor_angles_deg(molecule: Molecule, atom_id: str) -> list[float]:
    anchor = molecule.atoms[atom_id]
    origin = QPointF(anchor.x, anchor.y)
    return [angle_deg(origin, QPointF(other.x, other.y)) for other in molecule.neighbours(atom_id)]


def _select_hydrogen_angles(existing_angles_deg: list[float], count: int) -> list[float]:
    """Reparte `count` direcciones llenando cada vez el mayor hueco angular."""
    if count <= 0:
        return []
    occupied = list(existing_angles_deg)
    if not occupied:
        occupied = [0.0]
        chosen = [0.0]
    else:
        chosen = []
    while len(chosen) < count:
        angle = choose_optimal_direction(occupied)
        occupied.append(angle)
        chosen.append(angle)
    return chosen


def _is_removable_hydrogen(molecule: Molecule, atom: Atom) -> bool:
    if not isinstance(atom.element, Element) or atom.element.symbol != "H":
        return False
    if atom.degree != 1 or atom.formal_charge or atom.isotope_number is not None:
        return False
    bond = molecule.bonds[atom.bond_ids[0]]
    if bond.stereo in _STEREO_BONDS:
        return False
    other = molecule.atoms[bond.other_atom_id(atom.id)]
    return other.symbol != "H"


class AddAtomCommand(QUndoCommand):
    def __init__(
        self,
        molecule: Molecule,
        element,
        x: float,
        y: float,
        formal_charge: Optional[int] = None,
        isotope_number: Optional[int] = None,
    ) -> None:
        super().__init__("Add atom")
        self._molecule = molecule
        self._element = element
        self._pos = (x, y)
        self._formal_charge = formal_charge
        self._isotope_number = isotope_number
        self._atom_id: Optional[str] = None

    def redo(self) -> None:
        atom = self._molecule.add_atom(
            self._element,
            self._pos[0],
            self._pos[1],
            atom_id=self._atom_id,
            formal_charge=self._formal_charge,
            isotope_number=self._isotope_number,
        )
        self._atom_id = atom.id

    def undo(self) -> None:
        self._molecule.remove_atom(self._atom_id)

    @property
    def atom_id(self) -> Optional[str]:
        return self._atom_id


class RemoveAtomsCommand(QUndoCommand):
    """Elimina átomos (con sus enlaces) y enlaces sueltos."""

    def __init__(
        self,
        molecule: Molecule,
        atom_ids: Iterable[str] = (),
        bond_ids: Iterable[str] = (),
    ) -> None:
        super().__init__("Delete selection")
        self._molecule = molecule
        self._atom_ids = list(dict.fromkeys(atom_ids))
        self._bond_ids = list(dict.fromkeys(bond_ids))
        self._removed_atoms: List[_AtomSnapshot] = []
        self._removed_bonds: List[_BondSnapshot] = []

    def redo(self) -> None:
        self._removed_atoms = []
        self._removed_bonds = []
        for bond in list(self._molecule.bonds.values()):
            if (
                bond.id in self._bond_ids
                or bond.start_atom_id in self._atom_ids
                or bond.end_atom_id in self._atom_ids
            ):
                self._removed_bonds.append(_BondSnapshot.of(self._molecule.remove_bond(bond.id)))
        for atom_id in self._atom_ids:
            if atom_id in self._molecule.atoms:
                atom, _bonds = self._molecule.remove_atom(atom_id)
                self._removed_atoms.append(_AtomSnapshot.of(atom))

    def undo(self) -> None:
        for snapshot in self._removed_atoms:
            snapshot.restore(self._molecule)
        for snapshot in self._removed_bonds:
            snapshot.restore(self._molecule)


class ChangeAtomCommand(QUndoCommand):
    def __init__(
        self,
        molecule: Molecule,
        atom_id: str,
        element=UNSET,
        formal_charge=UNSET,
        isotope_number=UNSET,
    ) -> None:
        super().__init__("Change atom")
        self._molecule = molecule
        self._atom_id = atom_id
        atom = molecule.atoms[atom_id]
        self._old = {
            "element": atom.element,
            "formal_charge": atom.formal_charge,
            "isotope_number": atom.isotope_number,
        }
        self._new = {
            key: value
            for key, value in (
                ("element", element),
                ("formal_charge", formal_charge),
                ("isotope_number", isotope_number),
            )
            if value is not UNSET
        }

    def redo(self) -> None:
        self._molecule.update_atom(self._atom_id, **self._new)

    def undo(self) -> None:
        self._molecule.update_atom(self._atom_id, **{key: self._old[key] for key in self._new})


class MoveAtomsCommand(QUndoCommand):
    def __init__(
        self,
        molecule: Molecule,
        before: Dict[str, Tuple[float, float]],
        after: Dict[str, Tuple[float, float]],
        skip_first_redo: bool = False,
    ) -> None:
        super().__init__("Move atoms")
        self._molecule = molecule
        self._before = before
        self._after = after
        self._skip_first_redo = skip_first_redo
        self._first_redo = True

    def redo(self) -> None:
        if self._skip_first_redo and self._first_redo:
            self._first_redo = False
            return
        self._apply_positions(self._after)

    def undo(self) -> None:
        self._apply_positions(self._before)

    def _apply_positions(self, positions: Dict[str, Tuple[float, float]]) -> None:
        for atom_id, (x, y) in positions.items():
            self._molecule.move_atom(atom_id, x, y)


class MoveMoleculeCommand(QUndoCommand):
    def __init__(self, molecule: Molecule, dx: float, dy: float) -> None:
        super().__init__("Move molecule")
        self._molecule = molecule
        self._dx = dx
        self._dy = dy

    def redo(self) -> None:
        self._molecule.move_all_atoms(self._dx, self._dy)

    def undo(self) -> None:
        self._molecule.move_all_atoms(-self._dx, -self._dy)


class FlipMoleculeCommand(QUndoCommand):
    """Refleja la molécula sobre el centro de su caja de contorno.

    La reflexión es su propia inversa. Las colocaciones explícitas de los
    dobles enlaces se invierten para conservar el lado visual.
    """

    def __init__(self, molecule: Molecule, vertical: bool = True) -> None:
        super().__init__("Flip vertical" if vertical else "Flip horizontal")
        self._molecule = molecule
        self._vertical = vertical

    def redo(self) -> None:
        self._flip()

    def undo(self) -> None:
        self._flip()

    def _flip(self) -> None:
        box = self._molecule.bounding_box
        if box is None:
            return
        cx, cy = box.center
        atoms = list(self._molecule.all_atoms())
        for atom in atoms:
            x, y = atom.x, atom.y
            if self._vertical:
                y = 2.0 * cy - y
            else:
                x = 2.0 * cx - x
            atom.parent.move_atom(atom.id, x, y)
        for bond in list(self._molecule.all_bonds()):
            if bond.explicit_placement in (BondDirection.CLOCKWISE, BondDirection.ANTICLOCKWISE):
                bond.parent.update_bond(
                    bond.id, explicit_placement=BondDirection(-int(bond.explicit_placement))
                )


class AddBondCommand(QUndoCommand):
    """Añade un enlace; si falta el segundo átomo lo crea en `new_atom_pos`."""

    def __init__(
        self,
        molecule: Molecule,
        a1_id: str,
        a2_id: Optional[str],
        order: BondOrder = BondOrder.SINGLE,
        stereo: BondStereo = BondStereo.NONE,
        new_atom_element=None,
        new_atom_pos: Optional[Tuple[float, float]] = None,
    ) -> None:
        super().__init__("Add bond")
        self._molecule = molecule
        self._a1_id = a1_id
        self._a2_id = a2_id
        self._order = order
        self._stereo = stereo
        self._new_atom_element = new_atom_element
        self._new_atom_pos = new_atom_pos
        self._created_atom_id: Optional[str] = None
        self._bond_id: Optional[str] = None

    def redo(self) -> None:
        if self._a2_id is None or self._a2_id == self._created_atom_id:
            if self._new_atom_pos is None:
                raise ValueError("AddBondCommand needs a second atom or a position for it")
            atom = self._molecule.add_atom(
                self._new_atom_element or "C",
                self._new_atom_pos[0],
                self._new_atom_pos[1],
                atom_id=self._created_atom_id,
            )
            self._created_atom_id = atom.id
            self._a2_id = atom.id
        bond = self._molecule.add_bond(
            self._a1_id,
            self._a2_id,
            self._order,
            self._stereo,
            bond_id=self._bond_id,
        )
        self._bond_id = bond.id

    def undo(self) -> None:
        self._molecule.remove_bond(self._bond_id)
        if self._created_atom_id is not None:
            self._molecule.remove_atom(self._created_atom_id)

    @property
    def bond_id(self) -> Optional[str]:
        return self._bond_id

    @property
    def created_atom_id(self) -> Optional[str]:
        return self._created_atom_id


class RemoveBondCommand(QUndoCommand):
    def __init__(self, molecule: Molecule, bond_id: str) -> None:
        super().__init__("Remove bond")
        self._molecule = molecule
        self._bond_id = bond_id
        self._snapshot: Optional[_BondSnapshot] = None

    def redo(self) -> None:
        self._snapshot = _BondSnapshot.of(self._molecule.remove_bond(self._bond_id))

    def undo(self) -> None:
        self._snapshot.restore(self._molecule)


class ChangeBondCommand(QUndoCommand):
    def __init__(
        self,
        molecule: Molecule,
        bond_id: str,
        new_order: Optional[BondOrder] = None,
        new_stereo: Optional[BondStereo] = None,
        new_placement=UNSET,
    ) -> None:
        super().__init__("Change bond")
        self._molecule = molecule
        self._bond_id = bond_id
        bond = molecule.bonds[bond_id]
        self._old_order = bond.order
        self._old_stereo = bond.stereo
        self._old_placement = bond.explicit_placement
        self._new_order = new_order if new_order is not None else bond.order
        self._new_stereo = new_stereo if new_stereo is not None else bond.stereo
        self._new_placement = bond.explicit_placement if new_placement is UNSET else new_placement

    def redo(self) -> None:
        self._molecule.update_bond(
            self._bond_id,
            order=self._new_order,
            stereo=self._new_stereo,
            explicit_placement=self._new_placement,
        )

    def undo(self) -> None:
        self._molecule.update_bond(
            self._bond_id,
            order=self._old_order,
            stereo=self._old_stereo,
            explicit_placement=self._old_placement,
        )


class AddHydrogensCommand(QUndoCommand):
    """Convierte los hidrógenos implícitos en átomos H explícitos."""

    def __init__(
        self,
        molecule: Molecule,
        atom_ids: Optional[Iterable[str]] = None,
        bond_length: Optional[float] = None,
    ) -> None:
        super().__init__("Add hydrogens")
        self._molecule = molecule
        self._atom_ids = list(atom_ids) if atom_ids is not None else None
        self._bond_length = bond_length
        self._atom_snapshots: List[_AtomSnapshot] = []
        self._bond_snapshots: List[_BondSnapshot] = []

    def redo(self) -> None:
        if self._atom_snapshots:
            for snapshot in self._atom_snapshots:
                snapshot.restore(self._molecule)
            for snapshot in self._bond_snapshots:
                snapshot.restore(self._molecule)
            return
        bond_length = self._bond_length or self._molecule.mean_bond_length
        targets = self._atom_ids if self._atom_ids is not None else list(self._molecule.atoms)
        pending = [(atom_id, self._molecule.atoms[atom_id].implicit_hydrogen_count) for atom_id in targets]
        for atom_id, count in pending:
            if count <= 0 or self._molecule.atoms[atom_id].symbol == "H":
                continue
            anchor = self._molecule.atoms[atom_id]
            origin = QPointF(anchor.x, anchor.y)
            for angle in _select_hydrogen_angles(_neighbor_angles_deg(self._molecule, atom_id), count):
                pos = endpoint_from_angle_len(origin, angle, bond_length)
                hydrogen = self._molecule.add_atom("H", pos.x(), pos.y())
                bond = self._molecule.add_bond(atom_id, hydrogen.id)
                self._atom_snapshots.append(_AtomSnapshot.of(hydrogen))
                self._bond_snapshots.append(_BondSnapshot.of(bond))

    def undo(self) -> None:
        for snapshot in self._bond_snapshots:
            self._molecule.remove_bond(snapshot.id)
        for snapshot in self._atom_snapshots:
            self._molecule.remove_atom(snapshot.id)

    @property
    def added_atom_ids(self) -> List[str]:
        return [snapshot.id for snapshot in self._atom_snapshots]


class RemoveHydrogensCommand(QUndoCommand):
    """Elimina los H explícitos terminales que no llevan estereoquímica."""

    def __init__(self, molecule: Molecule) -> None:
        super().__init__("Remove hydrogens")
        self._molecule = molecule
        self._atom_snapshots: List[_AtomSnapshot] = []
        self._bond_snapshots: List[_BondSnapshot] = []

    def redo(self) -> None:
        self._atom_snapshots = []
        self._bond_snapshots = []
        hydrogens = [
            atom for atom in self._molecule.atoms.values()
            if _is_removable_hydrogen(self._molecule, atom)
        ]
        for atom in hydrogens:
            atom, bonds = self._molecule.remove_atom(atom.id)
            self._atom_snapshots.append(_AtomSnapshot.of(atom))
            self._bond_snapshots.extend(_BondSnapshot.of(bond) for bond in bonds)

    def undo(self) -> None:
        for snapshot in self._atom_snapshots:
            snapshot.restore(self._molecule)
        for snapshot in self._bond_snapshots:
            snapshot.restore(self._molecule)


class RefreshCommand(QUndoCommand):
    """Separa fragmentos desconectados del modelo de forma reversible.

    La primera ejecución llama a `Model.refresh` y anota qué átomos y
    enlaces (por ID) pasaron de cada molécula origen a cada fragmento, y la
    lista de hijas de cada contenedor antes y después. Deshacer devuelve
    los átomos a su origen y restaura las listas; rehacer reaplica lo
    anotado sobre los mismos objetos `Molecule`, de modo que los comandos
    posteriores siguen apuntando a moléculas válidas.
    """

    def __init__(self, model: Model) -> None:
        super().__init__("Refresh")
        self._model = model
        self._moves: List[Tuple[Molecule, Molecule, List[str], List[str]]] = []
        self._before: List[Tuple[object, List[Molecule]]] = []
        self._after: List[Tuple[object, List[Molecule]]] = []
        self._created: List[Molecule] = []
        self._applied = False

    def redo(self) -> None:
        if self._applied:
            self._apply_layout(self._after)
            for source, fragment, atom_ids, bond_ids in self._moves:
                source.transfer_to(fragment, atom_ids, bond_ids)
            return
        self._before = _child_layout(self._model)
        owners = {id(atom): atom.parent for atom in self._model.all_atoms()}
        self._created = self._model.refresh()
        for fragment in self._created:
            atom_ids = list(fragment.atoms)
            source = owners[id(fragment.atoms[atom_ids[0]])]
            self._moves.append((source, fragment, atom_ids, list(fragment.bonds)))
        self._after = _child_layout(self._model)
        self._applied = True

    def undo(self) -> None:
        for source, fragment, atom_ids, bond_ids in reversed(self._moves):
            fragment.transfer_to(source, atom_ids, bond_ids)
        self._apply_layout(self._before)

    @staticmethod
    def _apply_layout(layout: List[Tuple[object, List[Molecule]]]) -> None:
        for container, children in layout:
            container.replace_molecules(children)

    @property
    def created_molecules(self) -> List[Molecule]:
        return list(self._created)


def _child_layout(model: Model) -> List[Tuple[object, List[Molecule]]]:
    layout: List[Tuple[object, List[Molecule]]] = [(model, list(model.molecules.values()))]
    for molecule in model.all_molecules():
        layout.append((molecule, list(molecule.molecules)))
    return layout
