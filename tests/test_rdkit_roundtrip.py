import os
import sys
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from chemio.rdkit_io import (
    molecule_to_molfile,
    molecule_to_rdkit,
    molecule_to_smiles,
    molfile_to_molecule,
    smiles_to_molecule,
)
from molcore import BondOrder, BondStereo, Molecule

try:
    from rdkit import Chem
    RDKit_AVAILABLE = True
except Exception:
    RDKit_AVAILABLE = False


class RdkitRoundtripTest(unittest.TestCase):
    @unittest.skipIf(not RDKit_AVAILABLE, "RDKit no disponible")
    def test_molecule_roundtrip_molfile(self):
        molecule = Molecule()
        a1 = molecule.add_atom("C", 0.0, 0.0)
        a2 = molecule.add_atom("C", 1.5, 0.0)
        molecule.add_bond(a1.id, a2.id)

        molfile = molecule_to_molfile(molecule)
        restored = molfile_to_molecule(molfile)
        smiles = molecule_to_smiles(restored)

        self.assertIn(smiles, {"CC", "C-C"})
        bond = next(iter(restored.bonds.values()))
        self.assertAlmostEqual(bond.length, 40.0, places=3)

    @unittest.skipIf(not RDKit_AVAILABLE, "RDKit no disponible")
    def test_smiles_aromatic_ring(self):
        molecule = smiles_to_molecule("c1ccccc1")
        self.assertEqual(len(molecule.atoms), 6)
        self.assertTrue(all(b.order == BondOrder.AROMATIC for b in molecule.bonds.values()))
        self.assertEqual(len(molecule.rings), 1)
        self.assertEqual(molecule.concise_formula, "C6H6")

    @unittest.skipIf(not RDKit_AVAILABLE, "RDKit no disponible")
    def test_charge_and_wedge_export(self):
        molecule = Molecule()
        n = molecule.add_atom("N", 0.0, 0.0, formal_charge=1)
        c = molecule.add_atom("C", 40.0, 0.0)
        molecule.add_bond(n.id, c.id, stereo=BondStereo.WEDGE)

        mol = molecule_to_rdkit(molecule)
        self.assertEqual(mol.GetBondWithIdx(0).GetBondDir(), Chem.BondDir.BEGINWEDGE)
        self.assertAlmostEqual(mol.GetConformer().GetAtomPosition(1).x, 40.0)

        restored = molfile_to_molecule(molecule_to_molfile(molecule))
        charges = sorted(atom.formal_charge or 0 for atom in restored.atoms.values())
        self.assertEqual(charges, [0, 1])

    @unittest.skipIf(RDKit_AVAILABLE, "RDKit disponible")
    def test_missing_rdkit_raises(self):
        with self.assertRaises(RuntimeError):
            smiles_to_molecule("CC")


if __name__ == "__main__":
    unittest.main()
