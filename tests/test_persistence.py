"""Pruebas unitarias para la persistencia JSON de documentos."""

import os
import sys
import tempfile
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from chemio.persistence import PersistenceManager, load_model, model_from_dict, model_to_dict, save_model
from molcore import BondDirection, BondOrder, BondStereo, Model, Molecule


def _document():
    model = Model(bond_length=30.0)
    molecule = model.add_molecule(Molecule("m1"))
    molecule.names.append(("trivial", "formaldehyde"))
    c = molecule.add_atom("C", 0.0, 0.0)
    o = molecule.add_atom("O", 30.0, 0.0, formal_charge=-1, isotope_number=18)
    molecule.add_bond(
        c.id, o.id, BondOrder.DOUBLE, BondStereo.NONE, explicit_placement=BondDirection.CLOCKWISE
    )
    water = molecule.add_molecule(Molecule("m2"))
    water.add_atom("O", 100.0, 0.0)
    water.count = 2
    return model


class PersistenceTest(unittest.TestCase):
    """Casos de prueba para PersistenceManager."""

    def test_dict_round_trip(self):
        """Verifica save to dict y load from dict.

        Returns:
            None.

        """
        data = model_to_dict(_document())
        self.assertEqual(data["application"], "chemgraph")
        self.assertEqual(data["version"], PersistenceManager.VERSION)

        model = model_from_dict(data)
        self.assertEqual(model.bond_length, 30.0)
        molecule = model.get_molecule("m1")
        self.assertEqual(molecule.names, [("trivial", "formaldehyde")])
        oxygen = molecule.atoms["a2"]
        self.assertEqual(oxygen.symbol, "O")
        self.assertEqual(oxygen.formal_charge, -1)
        self.assertEqual(oxygen.isotope_number, 18)
        bond = molecule.bonds["b1"]
        self.assertEqual(bond.order, BondOrder.DOUBLE)
        self.assertEqual(bond.explicit_placement, BondDirection.CLOCKWISE)
        self.assertEqual(molecule.molecules[0].count, 2)
        self.assertIs(molecule.molecules[0].parent, molecule)

    def test_file_round_trip(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "doc.json")
            save_model(path, _document())
            model = load_model(path)
        self.assertEqual(model.total_atoms_count, 3)
        self.assertEqual(model.total_bonds_count, 1)

    def test_rejects_foreign_document(self):
        """Verifica que se rechaza un JSON de otra aplicación."""
        with self.assertRaises(ValueError):
            model_from_dict({"application": "other", "model": {}})

    def test_bad_data_is_recorded_not_raised(self):
        """Verifica que los datos defectuosos se anotan en la molécula."""
        data = {
            "application": "chemgraph",
            "version": PersistenceManager.VERSION,
            "model": {
                "molecules": [
                    {
                        "id": "m1",
                        "atoms": [
                            {"id": "a1", "element": "C", "x": 0.0, "y": 0.0},
                            {"id": "a2", "element": "Qq", "x": 40.0, "y": 0.0},
                            {"id": "a3", "element": "C", "y": 0.0},
                            {"element": "C", "x": 60.0, "y": 0.0},
                            {"id": "a4", "element": "N", "x": 80.0, "y": 0.0},
                        ],
                        "bonds": [
                            {"id": "b1", "start": "a1", "end": "a2", "order": "S"},
                            {"id": "b2", "start": "a1", "end": "a9", "order": "S"},
                            {"id": "b3", "start": "a2", "end": "a1", "order": "D"},
                            {"id": "b4", "start": "a1", "end": "a4", "order": "S", "stereo": "bogus"},
                            {"id": "b5", "start": "a2", "end": "a4", "order": "S", "placement": 7},
                        ],
                    }
                ]
            },
        }
        with self.assertLogs("chemio.persistence", level="WARNING"):
            model = model_from_dict(data)
        molecule = model.get_molecule("m1")
        self.assertEqual(list(molecule.atoms), ["a1", "a2", "a4"])
        self.assertEqual(list(molecule.bonds), ["b1", "b4", "b5"])
        self.assertEqual(len(molecule.errors), 1)
        self.assertEqual(len(molecule.warnings), 6)
        self.assertEqual(molecule.bonds["b4"].stereo, BondStereo.NONE)
        self.assertIsNone(molecule.bonds["b5"].explicit_placement)
        self.assertIsNone(molecule.atoms["a2"].element)


if __name__ == "__main__":
    unittest.main()
