from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from molcore.elements import Element
from molcore.model import DEFAULT_BOND_LENGTH, Atom, BondOrder, BondStereo
from molcore.molecule import Molecule

try:
    from rdkit import Chem
    from rdkit.Chem import AllChem
except Exception:  # pragma: no cover - optional dependency at runtime
    Chem = None
    AllChem = None

logger = logging.getLogger(__name__)


def _require_rdkit():
    if Chem is None or AllChem is None:
        raise RuntimeError("RDKit no disponible")


def _bond_type(order: BondOrder):
    if order in (BondOrder.AROMATIC, BondOrder.PARTIAL12):
        return Chem.BondType.AROMATIC
    if order == BondOrder.DOUBLE:
        return Chem.BondType.DOUBLE
    if order == BondOrder.TRIPLE:
        return Chem.BondType.TRIPLE
    if order in (BondOrder.ZERO, BondOrder.PARTIAL01):
        return Chem.BondType.ZERO
    return Chem.BondType.SINGLE


def _bond_order(bond_type) -> BondOrder:
    if bond_type == Chem.BondType.AROMATIC:
        return BondOrder.AROMATIC
    if bond_type == Chem.BondType.DOUBLE:
        return BondOrder.DOUBLE
    if bond_type == Chem.BondType.TRIPLE:
        return BondOrder.TRIPLE
    if bond_type == Chem.BondType.ZERO:
        return BondOrder.ZERO
    return BondOrder.SINGLE


def _bond_dir(stereo: BondStereo):
    if stereo == BondStereo.WEDGE:
        return Chem.BondDir.BEGINWEDGE
    if stereo == BondStereo.HATCH:
        return Chem.BondDir.BEGINDASH
    if stereo == BondStereo.INDETERMINATE:
        return Chem.BondDir.UNKNOWN
    return Chem.BondDir.NONE


def _bond_stereo(bond_dir) -> BondStereo:
    if bond_dir == Chem.BondDir.BEGINWEDGE:
        return BondStereo.WEDGE
    if bond_dir == Chem.BondDir.BEGINDASH:
        return BondStereo.HATCH
    if bond_dir == Chem.BondDir.UNKNOWN:
        return BondStereo.INDETERMINATE
    return BondStereo.NONE


def molecule_to_rdkit_with_map(molecule: Molecule):
    """Construye un `Chem.Mol` con conformador 2D a partir de la molécula.

    Las moléculas hijas se incluyen como fragmentos. Los átomos sin
    elemento o con un grupo funcional se exportan como átomo comodín (`*`).
    La Y del lienzo crece hacia abajo, así que se invierte.

    Returns:
        Tupla `(mol, id_map)` donde `id_map` relaciona cada `Atom` con su
        índice en RDKit.
    """
    _require_rdkit()
    rw = Chem.RWMol()
    id_map: Dict[Atom, int] = {}

    for atom in molecule.all_atoms():
        if isinstance(atom.element, Element):
            rd_atom = Chem.Atom(atom.element.symbol)
        else:
            logger.warning("Exporting atom %s (%r) as a dummy atom", atom.id, atom.symbol)
            rd_atom = Chem.Atom(0)
        rd_atom.SetFormalCharge(atom.formal_charge or 0)
        if atom.isotope_number is not None:
            rd_atom.SetIsotope(atom.isotope_number)
        id_map[atom] = rw.AddAtom(rd_atom)

    for bond in molecule.all_bonds():
        begin = id_map[bond.start_atom]
        end = id_map[bond.end_atom]
        bond_type = _bond_type(bond.order)
        if bond_type == Chem.BondType.AROMATIC:
            rw.GetAtomWithIdx(begin).SetIsAromatic(True)
            rw.GetAtomWithIdx(end).SetIsAromatic(True)
        rw.AddBond(begin, end, bond_type)
        rd_bond = rw.GetBondBetweenAtoms(begin, end)
        if bond_type == Chem.BondType.AROMATIC:
            rd_bond.SetIsAromatic(True)
        rd_bond.SetBondDir(_bond_dir(bond.stereo))

    mol = rw.GetMol()
    mol.UpdatePropertyCache(strict=False)
    conf = Chem.Conformer(mol.GetNumAtoms())
    for atom, idx in id_map.items():
        conf.SetAtomPosition(idx, (atom.x, -atom.y, 0.0))
    mol.AddConformer(conf, assignId=True)
    return mol, id_map


def molecule_to_rdkit(molecule: Molecule):
    mol, _ = molecule_to_rdkit_with_map(molecule)
    return mol


def molecule_to_smiles(molecule: Molecule) -> str:
    mol = molecule_to_rdkit(molecule)
    return Chem.MolToSmiles(mol, canonical=True)


def molecule_to_molfile(molecule: Molecule) -> str:
    mol = molecule_to_rdkit(molecule)
    return Chem.MolToMolBlock(mol, kekulize=False)


def molfile_to_molecule(molfile: str) -> Molecule:
    _require_rdkit()
    mol = Chem.MolFromMolBlock(molfile, sanitize=True)
    return rdkit_to_molecule(mol)


def smiles_to_molecule(smiles: str) -> Molecule:
    _require_rdkit()
    mol = Chem.MolFromSmiles(smiles)
    return rdkit_to_molecule(mol)


def rdkit_to_molecule(mol, bond_length: float = DEFAULT_BOND_LENGTH) -> Molecule:
    """Convierte un `Chem.Mol` en una `Molecule` del editor.

    Si el mol no trae coordenadas se generan en 2D. Las posiciones se
    escalan para que la longitud media de enlace sea `bond_length`.

    Raises:
        RuntimeError: Si RDKit no está instalado.
        ValueError: Si `mol` es `None` (p. ej. SMILES inválido).
    """
    _require_rdkit()
    if mol is None:
        raise ValueError("Mol inválido")
    if mol.GetNumConformers() == 0:
        AllChem.Compute2DCoords(mol)
    conf = mol.GetConformer()

    positions: Dict[int, Tuple[float, float]] = {}
    for atom in mol.GetAtoms():
        pos = conf.GetAtomPosition(atom.GetIdx())
        positions[atom.GetIdx()] = (pos.x, -pos.y)
    pairs = [(bond.GetBeginAtomIdx(), bond.GetEndAtomIdx()) for bond in mol.GetBonds()]
    _scale_to_default(positions, pairs, bond_length)

    molecule = Molecule()
    idx_map: Dict[int, str] = {}
    for atom in mol.GetAtoms():
        idx = atom.GetIdx()
        x, y = positions[idx]
        symbol = atom.GetSymbol() if atom.GetAtomicNum() > 0 else None
        new_atom = molecule.add_atom(
            symbol,
            x,
            y,
            formal_charge=atom.GetFormalCharge() or None,
            isotope_number=atom.GetIsotope() or None,
        )
        idx_map[idx] = new_atom.id

    for bond in mol.GetBonds():
        order = BondOrder.AROMATIC if bond.GetIsAromatic() else _bond_order(bond.GetBondType())
        molecule.add_bond(
            idx_map[bond.GetBeginAtomIdx()],
            idx_map[bond.GetEndAtomIdx()],
            order,
            _bond_stereo(bond.GetBondDir()),
        )
    return molecule


def _scale_to_default(
    positions: Dict[int, Tuple[float, float]],
    pairs: List[Tuple[int, int]],
    target: float = DEFAULT_BOND_LENGTH,
) -> None:
    if not pairs:
        return
    lengths = []
    for a1, a2 in pairs:
        dx = positions[a2][0] - positions[a1][0]
        dy = positions[a2][1] - positions[a1][1]
        lengths.append((dx * dx + dy * dy) ** 0.5)
    avg = sum(lengths) / len(lengths)
    if avg <= 0:
        return
    scale = target / avg
    for idx, (x, y) in positions.items():
        positions[idx] = (x * scale, y * scale)
