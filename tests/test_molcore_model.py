"""Pruebas unitarias para el grafo molecular (Molecule y Model)."""

import os
import sys
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from chemcalc import TYPICAL_VALENCE, molecular_formula, molecular_weight
from molcore import (
    PERIODIC_TABLE,
    BondDirection,
    BondOrder,
    BondStereo,
    FunctionalGroup,
    Model,
    Molecule,
    PreconditionError,
    get_element,
)


def _ethanol():
    molecule = Molecule()
    c1 = molecule.add_atom("C", 0.0, 0.0)
    c2 = molecule.add_atom("C", 40.0, 0.0)
    o = molecule.add_atom("O", 60.0, 34.64)
    molecule.add_bond(c1.id, c2.id)
    molecule.add_bond(c2.id, o.id)
    return molecule


class MoleculeGraphTest(unittest.TestCase):
    """Casos de prueba para la edición del grafo."""

    def test_add_atom_and_bond(self):
        """Verifica add atom and bond.

        Returns:
            None.

        """
        molecule = Molecule()
        a1 = molecule.add_atom("C", 0.0, 0.0)
        a2 = molecule.add_atom("O", 1.0, 0.0)
        bond = molecule.add_bond(a1.id, a2.id, BondOrder.DOUBLE)

        self.assertEqual(len(molecule.atoms), 2)
        self.assertEqual(len(molecule.bonds), 1)
        self.assertEqual(bond.order_value, 2.0)
        self.assertIs(a1.parent, molecule)
        self.assertIs(bond.parent, molecule)
        self.assertEqual(a1.bond_ids, [bond.id])
        self.assertIs(bond.other_atom(a1.id), a2)

    def test_generated_ids_skip_existing(self):
        """Verifica que los IDs generados no colisionan con IDs explícitos."""
        molecule = Molecule()
        molecule.add_atom("C", 0.0, 0.0, atom_id="a1")
        atom = molecule.add_atom("C", 1.0, 0.0)
        self.assertEqual(atom.id, "a2")

    def test_bond_preconditions(self):
        """Verifica que los enlaces inválidos se rechazan."""
        molecule = Molecule()
        a1 = molecule.add_atom("C", 0.0, 0.0)
        a2 = molecule.add_atom("C", 1.0, 0.0)
        molecule.add_bond(a1.id, a2.id, bond_id="b1")

        with self.assertRaises(PreconditionError):
            molecule.add_bond(a1.id, a1.id)
        with self.assertRaises(PreconditionError):
            molecule.add_bond(a1.id, "missing")
        with self.assertRaises(PreconditionError):
            molecule.add_bond(a2.id, a1.id)
        other = molecule.add_atom("N", 2.0, 0.0)
        with self.assertRaises(PreconditionError):
            molecule.add_bond(a2.id, other.id, bond_id="b1")
        self.assertEqual(len(molecule.bonds), 1)

    def test_unknown_element_is_recorded(self):
        """Verifica que un símbolo desconocido queda anotado como error."""
        molecule = Molecule()
        atom = molecule.add_atom("Xx", 0.0, 0.0)
        self.assertIsNone(atom.element)
        self.assertEqual(len(molecule.errors), 1)

    def test_remove_atom_removes_bonds(self):
        """Verifica remove atom.

        Returns:
            None.

        """
        molecule = _ethanol()
        middle = list(molecule.atoms)[1]
        atom, bonds = molecule.remove_atom(middle)

        self.assertEqual(atom.id, middle)
        self.assertIsNone(atom.parent)
        self.assertEqual(len(bonds), 2)
        self.assertEqual(molecule.bonds, {})
        for remaining in molecule.atoms.values():
            self.assertEqual(remaining.bond_ids, [])

    def test_update_bond_notifies_observers(self):
        """Verifica que cambiar un enlace avisa a sus observadores."""
        molecule = _ethanol()
        bond = next(iter(molecule.bonds.values()))
        seen = []
        bond.placement_observers.append(seen.append)

        molecule.update_bond(bond.id, order=BondOrder.TRIPLE, stereo=BondStereo.NONE)
        self.assertEqual(bond.order, BondOrder.TRIPLE)
        self.assertEqual(seen, [bond])

        molecule.update_bond(bond.id, explicit_placement=BondDirection.CLOCKWISE)
        self.assertEqual(bond.placement, BondDirection.CLOCKWISE)

    def test_acyclic_placement_follows_substituents(self):
        """Verifica que el doble enlace acíclico se coloca hacia el sustituyente."""
        molecule = Molecule()
        c1 = molecule.add_atom("C", 0.0, 0.0)
        c2 = molecule.add_atom("C", 40.0, 0.0)
        c3 = molecule.add_atom("C", 60.0, 34.64)
        bond = molecule.add_bond(c1.id, c2.id, BondOrder.DOUBLE)
        molecule.add_bond(c2.id, c3.id)

        # La normal (-uy, ux) de (1, 0) apunta a +Y: lado horario.
        self.assertEqual(bond.placement, BondDirection.CLOCKWISE)

    def test_formula_and_cache(self):
        """Verifica concise formula y su invalidación."""
        molecule = _ethanol()
        self.assertEqual(molecule.concise_formula, "C2H6O")
        self.assertEqual(molecule.calculated_formula(), "C 2 H 6 O 1")

        oxygen = list(molecule.atoms)[2]
        molecule.update_atom(oxygen, element="N")
        self.assertEqual(molecule.concise_formula, "C2H7N")

    def test_bounding_box_and_mean_bond_length(self):
        """Verifica bounding box y mean bond length."""
        molecule = _ethanol()
        box = molecule.bounding_box
        self.assertAlmostEqual(box.left, 0.0)
        self.assertAlmostEqual(box.right, 60.0)
        self.assertAlmostEqual(box.bottom, 34.64)
        self.assertAlmostEqual(molecule.mean_bond_length, 40.0, places=2)

        molecule.move_all_atoms(10.0, 5.0)
        self.assertAlmostEqual(molecule.bounding_box.left, 10.0)

        model = Model(bond_length=25.0)
        empty = model.add_molecule(Molecule())
        self.assertEqual(empty.mean_bond_length, 25.0)


class MoleculeHierarchyTest(unittest.TestCase):
    """Casos de prueba para moléculas hijas, copias y multiplicidad."""

    def test_count_requires_molecule_parent(self):
        """Verifica que la multiplicidad solo se fija en moléculas hijas."""
        model = Model()
        parent = model.add_molecule(Molecule())
        with self.assertRaises(PreconditionError):
            parent.count = 2
        with self.assertRaises(PreconditionError):
            Molecule().count = 2

        child = parent.add_molecule(Molecule())
        child.count = 2
        self.assertEqual(child.count, 2)

    def test_child_count_multiplies_formula(self):
        """Verifica que la multiplicidad de una hija escala la fórmula."""
        parent = Molecule()
        water = parent.add_molecule(Molecule())
        water.add_atom("O", 0.0, 0.0)
        water.count = 2
        self.assertEqual(parent.concise_formula, "H4O2")

    def test_clone_is_deep_copy(self):
        """Verifica que la copia conserva IDs y no comparte estado."""
        molecule = _ethanol()
        molecule.names.append(("trivial", "ethanol"))
        child = molecule.add_molecule(Molecule())
        child.add_atom("Na", 100.0, 0.0)
        child.count = 3

        copy = molecule.clone()
        self.assertEqual(copy.id, molecule.id)
        self.assertIsNone(copy.parent)
        self.assertEqual(list(copy.atoms), list(molecule.atoms))
        self.assertEqual(list(copy.bonds), list(molecule.bonds))
        self.assertEqual(copy.names, [("trivial", "ethanol")])
        self.assertEqual(copy.molecules[0].count, 3)

        first = list(copy.atoms)[0]
        copy.move_atom(first, 500.0, 500.0)
        self.assertEqual(molecule.atoms[first].position, (0.0, 0.0))
        self.assertIsNot(copy.atoms[first], molecule.atoms[first])
        self.assertIs(copy.atoms[first].parent, copy)

    def test_projection(self):
        """Verifica projection."""
        molecule = _ethanol()
        degrees = molecule.projection(lambda atom: atom.degree)
        self.assertEqual(list(degrees.values()), [1, 2, 1])


class ModelTest(unittest.TestCase):
    """Casos de prueba para el contenedor raíz."""

    def test_add_and_remove_molecule(self):
        """Verifica add molecule y remove molecule."""
        model = Model()
        molecule = model.add_molecule(_ethanol())
        self.assertIs(molecule.parent, model)
        self.assertIs(molecule.model, model)
        with self.assertRaises(ValueError):
            model.add_molecule(molecule)

        model.remove_molecule(molecule)
        self.assertIsNone(molecule.parent)
        self.assertEqual(model.molecules, {})

    def test_totals_and_formula(self):
        """Verifica recuentos totales y fórmula del documento."""
        model = Model()
        model.add_molecule(_ethanol())
        water = Molecule()
        water.add_atom("O", 0.0, 100.0)
        model.add_molecule(water)

        self.assertEqual(model.total_atoms_count, 4)
        self.assertEqual(model.total_bonds_count, 2)
        self.assertEqual(model.concise_formula, "C2H6O . H2O")

    def test_relabel_makes_ids_unique(self):
        """Verifica que relabel renumera sin repetir IDs entre moléculas."""
        model = Model()
        first = model.add_molecule(_ethanol())
        second = model.add_molecule(_ethanol())

        model.relabel()

        self.assertEqual(list(model.molecules), ["m1", "m2"])
        self.assertEqual(list(first.atoms), ["a1", "a2", "a3"])
        self.assertEqual(list(second.atoms), ["a4", "a5", "a6"])
        self.assertEqual(list(second.bonds), ["b3", "b4"])
        for molecule in (first, second):
            for bond in molecule.bonds.values():
                self.assertIn(bond.id, molecule.atoms[bond.start_atom_id].bond_ids)
                self.assertIn(bond.id, molecule.atoms[bond.end_atom_id].bond_ids)
        self.assertEqual(second.add_atom("C", 0.0, 0.0).id, "a7")


class ChemistryHelpersTest(unittest.TestCase):
    """Casos de prueba para elementos, masas y accesores derivados."""

    def test_functional_group_expands_in_formula(self):
        """Verifica que "OH" se resuelve como grupo y se expande."""
        molecule = Molecule()
        c = molecule.add_atom("C", 0.0, 0.0)
        oh = molecule.add_atom("OH", 40.0, 0.0)
        molecule.add_bond(c.id, oh.id)

        self.assertIsInstance(oh.element, FunctionalGroup)
        self.assertIs(PERIODIC_TABLE.parse("CN"), PERIODIC_TABLE.functional_groups["CN"])
        self.assertEqual(molecule.concise_formula, "CH4O")

    def test_molecular_weight_of_ethanol(self):
        weight = molecular_weight(molecular_formula(_ethanol()))
        self.assertAlmostEqual(weight, 46.069, places=2)
        with self.assertRaises(ValueError):
            molecular_weight({"Xx": 1})

    def test_implicit_hydrogens_follow_typical_valence(self):
        """Verifica los H implícitos del subconjunto orgánico y su ausencia fuera de él."""
        molecule = Molecule()
        ammonium = molecule.add_atom("N", 0.0, 0.0, formal_charge=1)
        boron = molecule.add_atom("B", 40.0, 0.0)
        sodium = molecule.add_atom("Na", 80.0, 0.0)
        self.assertEqual(ammonium.implicit_hydrogen_count, TYPICAL_VALENCE["N"] + 1)
        self.assertEqual(boron.implicit_hydrogen_count, 3)
        self.assertNotIn("Na", TYPICAL_VALENCE)
        self.assertEqual(sodium.implicit_hydrogen_count, 0)

    def test_get_element(self):
        self.assertEqual(get_element("N").atomic_number, 7)
        with self.assertRaises(KeyError):
            get_element("Xx")

    def test_stereo_codes(self):
        """Verifica la correspondencia entre estéreo y su código de una letra."""
        for stereo in BondStereo:
            self.assertIs(BondStereo.from_code(stereo.code), stereo)
        self.assertIs(BondStereo.from_code("?"), BondStereo.NONE)
        self.assertIs(BondStereo.from_code(None), BondStereo.NONE)

    def test_bond_angle_length_and_ring_membership(self):
        molecule = Molecule()
        a1 = molecule.add_atom("C", 0.0, 0.0)
        a2 = molecule.add_atom("C", 0.0, 40.0)
        bond = molecule.add_bond(a1.id, a2.id)
        self.assertAlmostEqual(bond.length, 40.0)
        self.assertAlmostEqual(bond.angle, 90.0)
        self.assertEqual(bond.midpoint, (0.0, 20.0))
        self.assertFalse(a1.is_in_ring)

        a3 = molecule.add_atom("C", 34.64, 20.0)
        molecule.add_bond(a2.id, a3.id)
        closing = molecule.add_bond(a3.id, a1.id)
        self.assertTrue(a1.is_in_ring)
        self.assertTrue(closing.is_cyclic())
        self.assertEqual(len(molecule.rings), 1)


if __name__ == "__main__":
    unittest.main()
