"""Sesión de edición: punto de entrada transaccional sobre un `Model`.

Cada operación pública aplica un comando y lo registra en el diario dentro
de una transacción. Varias operaciones pueden agruparse en un único paso de
deshacer con `with session.transaction():`.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from molcore.container import Model
from molcore.model import Atom, Bond, BondDirection, BondOrder, BondStereo
from molcore.molecule import Molecule

from .commands import (
    AddAtomCommand,
    AddBondCommand,
    AddHydrogensCommand,
    ChangeAtomCommand,
    ChangeBondCommand,
    FlipMoleculeCommand,
    MoveAtomsCommand,
    MoveMoleculeCommand,
    RefreshCommand,
    RemoveAtomsCommand,
    RemoveBondCommand,
    RemoveHydrogensCommand,
    UNSET,
)
from .undo import Command, UndoHandler

logger = logging.getLogger(__name__)


class EditSession:
    """Dueño único de las mutaciones de un modelo y de su historial."""

    def __init__(self, model: Optional[Model] = None, undo_handler: Optional[UndoHandler] = None) -> None:
        self.model = model if model is not None else Model()
        self.undo_handler = undo_handler if undo_handler is not None else UndoHandler()
        self._listeners: List[Callable[["EditSession"], None]] = []
        self.undo_handler.add_listener(self._on_journal_changed)

    # ------------------------------------------------------------------
    # Observadores
    # ------------------------------------------------------------------
    def add_listener(self, listener: Callable[["EditSession"], None]) -> None:
        """Registra un observador del estado de deshacer/rehacer."""
        self._listeners.append(listener)

    def _on_journal_changed(self, _handler: UndoHandler) -> None:
        for listener in list(self._listeners):
            listener(self)

    @property
    def can_undo(self) -> bool:
        return self.undo_handler.can_undo

    @property
    def can_redo(self) -> bool:
        return self.undo_handler.can_redo

    def undo(self) -> bool:
        """Deshace el último paso; devuelve `False` si no había nada."""
        if not self.can_undo:
            return False
        self.undo_handler.undo()
        return True

    def redo(self) -> bool:
        if not self.can_redo:
            return False
        self.undo_handler.redo()
        return True

    # ------------------------------------------------------------------
    # Transacciones
    # ------------------------------------------------------------------
    @contextmanager
    def transaction(self) -> Iterator["EditSession"]:
        with self.undo_handler.transaction():
            yield self

    def execute(self, command: Command) -> Command:
        """Aplica `command` y lo registra en su propia transacción (o en la abierta)."""
        command.redo()
        with self.undo_handler.transaction():
            self.undo_handler.record_action(command)
        logger.debug("Executed %s", command.text())
        return command

    # ------------------------------------------------------------------
    # Moléculas
    # ------------------------------------------------------------------
    def new_molecule(self) -> Molecule:
        """Crea una molécula vacía de primer nivel (no se registra en el diario)."""
        return self.model.add_molecule(Molecule())

    def refresh(self) -> List[Molecule]:
        """Separa fragmentos desconectados en moléculas propias (deshacible)."""
        command = self.execute(RefreshCommand(self.model))
        return command.created_molecules

    # ------------------------------------------------------------------
    # Operaciones de edición
    # ------------------------------------------------------------------
    def add_atom(self, molecule: Molecule, element, x: float, y: float, **kwargs) -> Atom:
        command = self.execute(AddAtomCommand(molecule, element, x, y, **kwargs))
        return molecule.atoms[command.atom_id]

    def remove_atoms(
        self,
        molecule: Molecule,
        atom_ids: Iterable[str] = (),
        bond_ids: Iterable[str] = (),
    ) -> None:
        self.execute(RemoveAtomsCommand(molecule, atom_ids, bond_ids))

    def move_atoms(self, molecule: Molecule, after: Dict[str, Tuple[float, float]]) -> None:
        before = {atom_id: molecule.atoms[atom_id].position for atom_id in after}
        self.execute(MoveAtomsCommand(molecule, before, after))

    def change_atom(self, molecule: Molecule, atom_id: str, **changes) -> None:
        self.execute(ChangeAtomCommand(molecule, atom_id, **changes))

    def add_bond(
        self,
        molecule: Molecule,
        a1_id: str,
        a2_id: Optional[str],
        order: BondOrder = BondOrder.SINGLE,
        stereo: BondStereo = BondStereo.NONE,
        **kwargs,
    ) -> Bond:
        command = self.execute(AddBondCommand(molecule, a1_id, a2_id, order, stereo, **kwargs))
        return molecule.bonds[command.bond_id]

    def remove_bond(self, molecule: Molecule, bond_id: str) -> None:
        self.execute(RemoveBondCommand(molecule, bond_id))

    def change_bond(
        self,
        molecule: Molecule,
        bond_id: str,
        order: Optional[BondOrder] = None,
        stereo: Optional[BondStereo] = None,
        placement: Optional[BondDirection] | object = UNSET,
    ) -> None:
        self.execute(ChangeBondCommand(molecule, bond_id, order, stereo, placement))

    def add_hydrogens(self, molecule: Molecule, atom_ids: Optional[Iterable[str]] = None) -> List[str]:
        command = self.execute(
            AddHydrogensCommand(molecule, atom_ids, bond_length=self.model.bond_length)
        )
        return command.added_atom_ids

    def remove_hydrogens(self, molecule: Molecule) -> None:
        self.execute(RemoveHydrogensCommand(molecule))

    def flip(self, molecule: Molecule, vertical: bool = True) -> None:
        self.execute(FlipMoleculeCommand(molecule, vertical))

    def move_molecule(self, molecule: Molecule, dx: float, dy: float) -> None:
        self.execute(MoveMoleculeCommand(molecule, dx, dy))
