"""Contenedor raíz `Model`: dueño de las moléculas de primer nivel."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from molcore.hull import BoundingBox
from molcore.model import DEFAULT_BOND_LENGTH, Atom, Bond
from molcore.molecule import Molecule
from molcore.rings import RingStrategy

logger = logging.getLogger(__name__)


class Model:
    """Documento químico: moléculas de primer nivel y longitud de enlace."""

    def __init__(self, bond_length: float = DEFAULT_BOND_LENGTH) -> None:
        self.molecules: Dict[str, Molecule] = {}
        self.bond_length = float(bond_length)

    # Un `Model` es siempre raíz.
    parent = None

    def __repr__(self) -> str:
        return f"Model(molecules={len(self.molecules)})"

    def add_molecule(self, molecule: Molecule) -> Molecule:
        """Registra una molécula de primer nivel.

        Raises:
            ValueError: Si ya existe una molécula con el mismo ID.
        """
        if molecule.id in self.molecules:
            raise ValueError(f"Duplicate molecule id {molecule.id!r}")
        molecule.parent = self
        self.molecules[molecule.id] = molecule
        return molecule

    def remove_molecule(self, molecule: Molecule) -> Molecule:
        removed = self.molecules.pop(molecule.id)
        removed.parent = None
        return removed

    def replace_molecules(self, molecules: Iterable[Molecule]) -> None:
        """Sustituye las moléculas de primer nivel; las que salen quedan sin padre."""
        molecules = list(molecules)
        for old in self.molecules.values():
            if old not in molecules:
                old.parent = None
        self.molecules = {}
        for molecule in molecules:
            molecule.parent = self
            self.molecules[molecule.id] = molecule

    def get_molecule(self, molecule_id: str) -> Molecule:
        return self.molecules[molecule_id]

    def all_molecules(self) -> Iterator[Molecule]:
        """Moléculas de primer nivel y sus descendientes, en preorden."""
        def walk(molecule: Molecule) -> Iterator[Molecule]:
            yield molecule
            for child in molecule.molecules:
                yield from walk(child)

        for molecule in list(self.molecules.values()):
            yield from walk(molecule)

    def all_atoms(self) -> Iterator[Atom]:
        for molecule in self.molecules.values():
            yield from molecule.all_atoms()

    def all_bonds(self) -> Iterator[Bond]:
        for molecule in self.molecules.values():
            yield from molecule.all_bonds()

    @property
    def total_atoms_count(self) -> int:
        return sum(1 for _ in self.all_atoms())

    @property
    def total_bonds_count(self) -> int:
        return sum(1 for _ in self.all_bonds())

    @property
    def bounding_box(self) -> Optional[BoundingBox]:
        box: Optional[BoundingBox] = None
        for molecule in self.molecules.values():
            molecule_box = molecule.bounding_box
            if molecule_box is None:
                continue
            box = molecule_box if box is None else box.union(molecule_box)
        return box

    @property
    def mean_bond_length(self) -> float:
        """Longitud media de todos los enlaces o `bond_length` si no hay."""
        bonds = list(self.all_bonds())
        if not bonds:
            return self.bond_length
        return sum(bond.length for bond in bonds) / len(bonds)

    @property
    def concise_formula(self) -> str:
        """Fórmulas de las moléculas de primer nivel unidas por " . "."""
        return " . ".join(
            molecule.concise_formula for molecule in self.molecules.values() if molecule.concise_formula
        )

    def rebuild_rings(self, strategy: Optional[RingStrategy] = None) -> None:
        for molecule in self.all_molecules():
            molecule.rebuild_rings(strategy)

    def refresh(self) -> List[Molecule]:
        """Separa fragmentos en todas las moléculas y descarta las vacías.

        Returns:
            Las moléculas nuevas creadas durante la separación.
        """
        spun_off: List[Molecule] = []
        for molecule in list(self.molecules.values()):
            if not molecule.atoms and not molecule.molecules:
                self.remove_molecule(molecule)
                continue
            spun_off.extend(molecule.refresh())
        return spun_off

    def relabel(self) -> None:
        """Renumera las moléculas, átomos y enlaces (m1, a1, b1...).

        Los contadores son globales al modelo, de modo que los IDs no se
        repiten entre moléculas. Las referencias cruzadas (enlaces de los
        átomos y extremos de los enlaces) se reescriben con los IDs nuevos.
        """
        counters = {"m": 0, "a": 0, "b": 0}

        def next_id(prefix: str) -> str:
            counters[prefix] += 1
            return f"{prefix}{counters[prefix]}"

        for molecule in list(self.all_molecules()):
            atom_map = {atom_id: next_id("a") for atom_id in molecule.atoms}
            bond_map = {bond_id: next_id("b") for bond_id in molecule.bonds}
            atoms = list(molecule.atoms.values())
            bonds = list(molecule.bonds.values())
            for atom in atoms:
                atom.id = atom_map[atom.id]
                atom.bond_ids = [bond_map[bond_id] for bond_id in atom.bond_ids]
            for bond in bonds:
                bond.id = bond_map[bond.id]
                bond.start_atom_id = atom_map[bond.start_atom_id]
                bond.end_atom_id = atom_map[bond.end_atom_id]
            molecule.atoms = {atom.id: atom for atom in atoms}
            molecule.bonds = {bond.id: bond for bond in bonds}
            molecule._next_atom_id = counters["a"] + 1
            molecule._next_bond_id = counters["b"] + 1
            molecule.id = next_id("m")
            molecule.rebuild_rings()

        self.molecules = {molecule.id: molecule for molecule in self.molecules.values()}
        logger.debug(
            "Relabelled model: %d molecule(s), %d atom(s), %d bond(s)",
            counters["m"],
            counters["a"],
            counters["b"],
        )
