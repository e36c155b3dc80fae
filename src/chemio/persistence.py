"""Persistencia de documentos químicos en JSON.

Este módulo serializa y deserializa un `Model` completo (moléculas hijas
incluidas) para reconstruir el documento al abrir un archivo. Los datos
defectuosos (símbolos desconocidos, enlaces a átomos inexistentes) no
abortan la carga: se anotan en `errors`/`warnings` de la molécula.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

from molcore.container import Model
from molcore.errors import PreconditionError
from molcore.model import DEFAULT_BOND_LENGTH, BondDirection, BondOrder, BondStereo
from molcore.molecule import Molecule

logger = logging.getLogger(__name__)

APPLICATION = "chemgraph"


class PersistenceManager:
    """Gestiona el guardado y carga de documentos JSON."""

    VERSION = "1.0.0"

    @staticmethod
    def molecule_to_dict(molecule: Molecule) -> Dict[str, Any]:
        atoms_data = []
        for atom in molecule.atoms.values():
            atoms_data.append({
                "id": atom.id,
                "element": atom.element.symbol if atom.element is not None else None,
                "x": atom.x,
                "y": atom.y,
                "formal_charge": atom.formal_charge,
                "isotope_number": atom.isotope_number,
            })

        bonds_data = []
        for bond in molecule.bonds.values():
            bonds_data.append({
                "id": bond.id,
                "start": bond.start_atom_id,
                "end": bond.end_atom_id,
                "order": bond.order.value,
                "stereo": bond.stereo.value,
                "placement": None if bond.explicit_placement is None else int(bond.explicit_placement),
            })

        return {
            "id": molecule.id,
            "role": molecule.role,
            "count": molecule.count,
            "names": [list(name) for name in molecule.names],
            "formulas": [list(formula) for formula in molecule.formulas],
            "errors": list(molecule.errors),
            "warnings": list(molecule.warnings),
            "atoms": atoms_data,
            "bonds": bonds_data,
            "molecules": [PersistenceManager.molecule_to_dict(child) for child in molecule.molecules],
        }

    @staticmethod
    def save_to_dict(model: Model) -> Dict[str, Any]:
        """Serializa el modelo en un diccionario.

        Args:
            model: Documento a serializar.

        Returns:
            Diccionario serializable con la versión del formato y las
            moléculas de primer nivel.

        Side Effects:
            No tiene efectos laterales; solo lee el modelo.
        """
        return {
            "application": APPLICATION,
            "version": PersistenceManager.VERSION,
            "model": {
                "bond_length": model.bond_length,
                "molecules": [
                    PersistenceManager.molecule_to_dict(molecule) for molecule in model.molecules.values()
                ],
            },
        }

    @staticmethod
    def molecule_from_dict(data: Dict[str, Any]) -> Molecule:
        molecule = Molecule(data.get("id"))
        molecule.role = data.get("role")
        molecule.names = [tuple(name) for name in data.get("names", [])]
        molecule.formulas = [tuple(formula) for formula in data.get("formulas", [])]
        molecule.errors = list(data.get("errors", []))
        molecule.warnings = list(data.get("warnings", []))

        for atom_d in data.get("atoms", []):
            try:
                molecule.add_atom(
                    atom_d.get("element"),
                    atom_d["x"],
                    atom_d["y"],
                    atom_id=atom_d["id"],
                    formal_charge=atom_d.get("formal_charge"),
                    isotope_number=atom_d.get("isotope_number"),
                )
            except (KeyError, TypeError, ValueError) as exc:
                message = f"Skipping atom record {atom_d!r}: {exc!r}"
                logger.warning("%s in molecule %s", message, molecule.id)
                molecule.warnings.append(message)

        for bond_d in data.get("bonds", []):
            start, end = bond_d.get("start"), bond_d.get("end")
            if start not in molecule.atoms or end not in molecule.atoms:
                message = f"Bond {bond_d.get('id')!r} references missing atom(s) {start!r}, {end!r}"
                logger.warning("%s in molecule %s", message, molecule.id)
                molecule.warnings.append(message)
                continue
            try:
                stereo = BondStereo(bond_d.get("stereo", BondStereo.NONE.value))
            except ValueError:
                message = f"Bond {bond_d.get('id')!r} has unknown stereo {bond_d.get('stereo')!r}"
                logger.warning("%s in molecule %s", message, molecule.id)
                molecule.warnings.append(message)
                stereo = BondStereo.NONE
            placement = bond_d.get("placement")
            if placement is not None:
                try:
                    placement = BondDirection(placement)
                except ValueError:
                    message = f"Bond {bond_d.get('id')!r} has unknown placement {placement!r}"
                    logger.warning("%s in molecule %s", message, molecule.id)
                    molecule.warnings.append(message)
                    placement = None
            try:
                molecule.add_bond(
                    start,
                    end,
                    BondOrder.parse(bond_d.get("order")),
                    stereo,
                    bond_id=bond_d.get("id"),
                    explicit_placement=placement,
                )
            except PreconditionError as exc:
                logger.warning("Skipping bond in molecule %s: %s", molecule.id, exc)
                molecule.warnings.append(str(exc))

        for child_d in data.get("molecules", []):
            child = molecule.add_molecule(PersistenceManager.molecule_from_dict(child_d))
            if child_d.get("count") is not None:
                child.count = child_d["count"]
        return molecule

    @staticmethod
    def load_from_dict(data: Dict[str, Any]) -> Model:
        """Reconstruye un modelo desde un diccionario.

        Args:
            data: Diccionario de estado (resultado de `save_to_dict`).

        Returns:
            El modelo con los anillos ya percibidos.

        Raises:
            ValueError: Si el documento no corresponde a esta aplicación.
        """
        if data.get("application") != APPLICATION:
            raise ValueError(f"Not a valid {APPLICATION} document")

        model_data = data.get("model", {})
        model = Model(model_data.get("bond_length", DEFAULT_BOND_LENGTH))
        for molecule_d in model_data.get("molecules", []):
            model.add_molecule(PersistenceManager.molecule_from_dict(molecule_d))
        model.rebuild_rings()
        return model

    @staticmethod
    def save_to_file(filepath: str, model: Model) -> None:
        """Guarda el modelo en un archivo JSON.

        Side Effects:
            Escribe en disco el archivo indicado.
        """
        data = PersistenceManager.save_to_dict(model)
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    @staticmethod
    def load_from_file(filepath: str) -> Model:
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)
        return PersistenceManager.load_from_dict(data)


model_to_dict = PersistenceManager.save_to_dict
model_from_dict = PersistenceManager.load_from_dict
save_model = PersistenceManager.save_to_file
load_model = PersistenceManager.load_from_file
