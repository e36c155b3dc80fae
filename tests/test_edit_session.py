"""Pruebas unitarias para EditSession y los comandos de edición."""

import os
import sys
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from editing import EditSession
from editing.commands import AddBondCommand, MoveAtomsCommand
from molcore import BondDirection, BondOrder, BondStereo, PreconditionError


class EditSessionTest(unittest.TestCase):
    """Casos de prueba para EditSession."""

    def setUp(self):
        self.session = EditSession()
        self.molecule = self.session.new_molecule()

    def _snapshot(self):
        return (
            {atom_id: (a.symbol, a.x, a.y) for atom_id, a in self.molecule.atoms.items()},
            {
                bond_id: (b.start_atom_id, b.end_atom_id, b.order, b.stereo)
                for bond_id, b in self.molecule.bonds.items()
            },
        )

    def test_add_atom_undo_redo(self):
        """Verifica add atom con deshacer y rehacer.

        Returns:
            None.

        """
        atom = self.session.add_atom(self.molecule, "C", 0.0, 0.0)
        self.assertIn(atom.id, self.molecule.atoms)
        self.assertTrue(self.session.undo())
        self.assertEqual(self.molecule.atoms, {})
        self.assertTrue(self.session.redo())
        self.assertIn(atom.id, self.molecule.atoms)
        self.assertFalse(self.session.redo())

    def test_add_bond_creates_second_atom(self):
        """Verifica que el enlace puede crear su segundo átomo."""
        a1 = self.session.add_atom(self.molecule, "C", 0.0, 0.0)
        bond = self.session.add_bond(self.molecule, a1.id, None, new_atom_pos=(40.0, 0.0))
        self.assertEqual(len(self.molecule.atoms), 2)

        self.session.undo()
        self.assertEqual(list(self.molecule.atoms), [a1.id])
        self.assertEqual(self.molecule.bonds, {})

        self.session.redo()
        self.assertIn(bond.id, self.molecule.bonds)
        self.assertEqual(len(self.molecule.atoms), 2)

    def test_failed_command_records_nothing(self):
        """Verifica que un comando que falla no deja rastro en el diario."""
        a1 = self.session.add_atom(self.molecule, "C", 0.0, 0.0)
        with self.assertRaises(PreconditionError):
            self.session.add_bond(self.molecule, a1.id, a1.id)
        self.assertEqual(len(self.session.undo_handler.undo_records), 3)

    def test_transaction_groups_edits(self):
        """Verifica que varias ediciones se deshacen en un solo paso."""
        before = self._snapshot()
        with self.session.transaction():
            a1 = self.session.add_atom(self.molecule, "C", 0.0, 0.0)
            a2 = self.session.add_atom(self.molecule, "O", 40.0, 0.0)
            self.session.add_bond(self.molecule, a1.id, a2.id, BondOrder.DOUBLE)
        after = self._snapshot()

        self.session.undo()
        self.assertEqual(self._snapshot(), before)
        self.assertFalse(self.session.can_undo)
        self.session.redo()
        self.assertEqual(self._snapshot(), after)

    def test_remove_atoms_restores_bonds(self):
        """Verifica remove atoms y su restauración."""
        with self.session.transaction():
            a1 = self.session.add_atom(self.molecule, "C", 0.0, 0.0)
            a2 = self.session.add_atom(self.molecule, "C", 40.0, 0.0)
            a3 = self.session.add_atom(self.molecule, "N", 80.0, 0.0)
            b1 = self.session.add_bond(self.molecule, a1.id, a2.id)
            self.session.add_bond(self.molecule, a2.id, a3.id, BondOrder.TRIPLE)
        before = self._snapshot()

        self.session.remove_atoms(self.molecule, [a2.id])
        self.assertEqual(set(self.molecule.atoms), {a1.id, a3.id})
        self.assertEqual(self.molecule.bonds, {})

        self.session.undo()
        self.assertEqual(self._snapshot(), before)
        self.assertIn(b1.id, self.molecule.atoms[a1.id].bond_ids)

    def test_change_atom_and_bond(self):
        """Verifica change atom y change bond."""
        a1 = self.session.add_atom(self.molecule, "C", 0.0, 0.0)
        a2 = self.session.add_atom(self.molecule, "C", 40.0, 0.0)
        bond = self.session.add_bond(self.molecule, a1.id, a2.id)

        self.session.change_atom(self.molecule, a2.id, element="N", formal_charge=1)
        self.assertEqual(self.molecule.atoms[a2.id].symbol, "N")
        self.assertEqual(self.molecule.atoms[a2.id].formal_charge, 1)

        self.session.change_bond(
            self.molecule,
            bond.id,
            order=BondOrder.DOUBLE,
            stereo=BondStereo.NONE,
            placement=BondDirection.ANTICLOCKWISE,
        )
        self.assertEqual(bond.order, BondOrder.DOUBLE)
        self.assertEqual(bond.placement, BondDirection.ANTICLOCKWISE)

        self.session.undo()
        self.assertEqual(bond.order, BondOrder.SINGLE)
        self.assertIsNone(bond.explicit_placement)
        self.session.undo()
        self.assertEqual(self.molecule.atoms[a2.id].symbol, "C")
        self.assertIsNone(self.molecule.atoms[a2.id].formal_charge)

    def test_move_atoms_and_molecule(self):
        a1 = self.session.add_atom(self.molecule, "C", 0.0, 0.0)
        self.session.move_atoms(self.molecule, {a1.id: (10.0, 5.0)})
        self.assertEqual(self.molecule.atoms[a1.id].position, (10.0, 5.0))

        self.session.move_molecule(self.molecule, 1.0, 1.0)
        self.assertEqual(self.molecule.atoms[a1.id].position, (11.0, 6.0))

        self.session.undo()
        self.session.undo()
        self.assertEqual(self.molecule.atoms[a1.id].position, (0.0, 0.0))

    def test_move_atoms_skip_first_redo(self):
        """Verifica que un arrastre ya aplicado no se aplica dos veces."""
        a1 = self.session.add_atom(self.molecule, "C", 0.0, 0.0)
        self.molecule.move_atom(a1.id, 20.0, 0.0)
        self.session.execute(
            MoveAtomsCommand(self.molecule, {a1.id: (0.0, 0.0)}, {a1.id: (20.0, 0.0)}, skip_first_redo=True)
        )
        self.assertEqual(self.molecule.atoms[a1.id].position, (20.0, 0.0))
        self.session.undo()
        self.assertEqual(self.molecule.atoms[a1.id].position, (0.0, 0.0))
        self.session.redo()
        self.assertEqual(self.molecule.atoms[a1.id].position, (20.0, 0.0))

    def test_flip_inverts_explicit_placement(self):
        """Verifica flip y su propia inversa."""
        a1 = self.session.add_atom(self.molecule, "C", 0.0, 0.0)
        a2 = self.session.add_atom(self.molecule, "C", 40.0, 0.0)
        a3 = self.session.add_atom(self.molecule, "C", 60.0, 30.0)
        self.session.add_bond(self.molecule, a2.id, a3.id)
        bond = self.session.add_bond(self.molecule, a1.id, a2.id, BondOrder.DOUBLE)
        self.session.change_bond(self.molecule, bond.id, placement=BondDirection.CLOCKWISE)

        self.session.flip(self.molecule, vertical=True)
        self.assertEqual(self.molecule.atoms[a3.id].position, (60.0, 0.0))
        self.assertEqual(self.molecule.atoms[a1.id].position, (0.0, 30.0))
        self.assertEqual(bond.explicit_placement, BondDirection.ANTICLOCKWISE)

        self.session.undo()
        self.assertEqual(self.molecule.atoms[a3.id].position, (60.0, 30.0))
        self.assertEqual(bond.explicit_placement, BondDirection.CLOCKWISE)

    def test_add_and_remove_hydrogens(self):
        """Verifica la conversión de H implícitos en explícitos y su retirada."""
        carbon = self.session.add_atom(self.molecule, "C", 0.0, 0.0)
        added = self.session.add_hydrogens(self.molecule)
        self.assertEqual(len(added), 4)
        self.assertEqual(self.molecule.atoms[carbon.id].degree, 4)
        self.assertEqual(self.molecule.atoms[carbon.id].implicit_hydrogen_count, 0)
        self.assertEqual(self.molecule.concise_formula, "CH4")
        for hydrogen_id in added:
            hydrogen = self.molecule.atoms[hydrogen_id]
            distance = (hydrogen.x ** 2 + hydrogen.y ** 2) ** 0.5
            self.assertAlmostEqual(distance, self.session.model.bond_length)

        self.session.remove_hydrogens(self.molecule)
        self.assertEqual(list(self.molecule.atoms), [carbon.id])

        self.session.undo()
        self.assertEqual(len(self.molecule.atoms), 5)
        self.session.undo()
        self.assertEqual(list(self.molecule.atoms), [carbon.id])
        self.session.redo()
        self.assertEqual(sorted(self.molecule.atoms), sorted([carbon.id] + added))

    def test_stereo_hydrogen_is_kept(self):
        """Verifica que un H en cuña no se elimina."""
        carbon = self.session.add_atom(self.molecule, "C", 0.0, 0.0)
        hydrogen = self.session.add_atom(self.molecule, "H", 40.0, 0.0)
        self.session.add_bond(self.molecule, carbon.id, hydrogen.id, stereo=BondStereo.WEDGE)
        self.session.remove_hydrogens(self.molecule)
        self.assertIn(hydrogen.id, self.molecule.atoms)

    def test_listener_is_notified(self):
        calls = []
        self.session.add_listener(calls.append)
        self.session.add_atom(self.molecule, "C", 0.0, 0.0)
        self.session.undo()
        self.assertEqual(len(calls), 2)
        self.assertFalse(self.session.undo())

    def test_add_bond_command_needs_position(self):
        a1 = self.session.add_atom(self.molecule, "C", 0.0, 0.0)
        with self.assertRaises(ValueError):
            AddBondCommand(self.molecule, a1.id, None).redo()

    def test_refresh_splits_after_bond_removal(self):
        """Verifica que borrar el único enlace y refrescar separa moléculas."""
        a1 = self.session.add_atom(self.molecule, "C", 0.0, 0.0)
        bond = self.session.add_bond(self.molecule, a1.id, None, new_atom_pos=(40.0, 0.0))
        self.session.remove_bond(self.molecule, bond.id)
        created = self.session.refresh()
        self.assertEqual(len(created), 1)
        self.assertEqual(len(self.session.model.molecules), 2)

    def test_undo_and_redo_across_refresh(self):
        """Verifica que la separación en fragmentos se deshace y se rehace."""
        model = self.session.model
        a1 = self.session.add_atom(self.molecule, "C", 0.0, 0.0)
        bond = self.session.add_bond(self.molecule, a1.id, None, new_atom_pos=(40.0, 0.0))
        a2_id = bond.end_atom_id
        self.session.remove_bond(self.molecule, bond.id)
        fragment = self.session.refresh()[0]
        self.assertEqual(list(self.molecule.atoms), [a1.id])
        self.assertEqual(list(fragment.atoms), [a2_id])

        self.assertTrue(self.session.undo())
        self.assertEqual(list(model.molecules.values()), [self.molecule])
        self.assertEqual(set(self.molecule.atoms), {a1.id, a2_id})
        self.assertIsNone(fragment.parent)
        self.assertIs(self.molecule.atoms[a2_id].parent, self.molecule)

        self.assertTrue(self.session.undo())
        self.assertIn(bond.id, self.molecule.bonds)
        self.assertTrue(self.session.undo())
        self.assertEqual(list(self.molecule.atoms), [a1.id])

        self.assertTrue(self.session.redo())
        self.assertTrue(self.session.redo())
        self.assertTrue(self.session.redo())
        self.assertFalse(self.session.can_redo)
        self.assertIs(model.molecules[fragment.id], fragment)
        self.assertIs(fragment.parent, model)
        self.assertEqual(list(self.molecule.atoms), [a1.id])
        self.assertEqual(list(fragment.atoms), [a2_id])
        self.assertIs(fragment.atoms[a2_id].parent, fragment)

        for _ in range(4):
            self.assertTrue(self.session.undo())
        self.assertFalse(self.session.can_undo)
        self.assertEqual(self.molecule.atoms, {})
        self.assertEqual(list(model.molecules.values()), [self.molecule])


if __name__ == "__main__":
    unittest.main()
