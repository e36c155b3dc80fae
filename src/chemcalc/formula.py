"""Cálculo y formateo de fórmulas moleculares.

Este módulo agrega utilidades para contar elementos a partir de una
molécula y formatear la fórmula siguiendo el orden de Hill.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict

from molcore.elements import Element, FunctionalGroup

from .valence import implicit_h_count

if TYPE_CHECKING:
    from molcore.molecule import Molecule


def molecular_formula(molecule: "Molecule", recursive: bool = True) -> Dict[str, int]:
    """Calcula la fórmula molecular como diccionario de elemento -> conteo.

    Args:
        molecule: Molécula cuyos átomos se cuentan.
        recursive: Si se suman también las moléculas hijas.

    Returns:
        Diccionario con símbolos atómicos y sus cantidades totales. Los
        átomos sin elemento se ignoran; los grupos funcionales se expanden.

    Side Effects:
        No tiene efectos laterales; solo calcula y devuelve datos.
    """
    counts: Dict[str, int] = {}

    for atom in molecule.atoms.values():
        element = atom.element
        if isinstance(element, FunctionalGroup):
            for symbol, count in element.components:
                counts[symbol] = counts.get(symbol, 0) + count
            continue
        if not isinstance(element, Element):
            continue
        counts[element.symbol] = counts.get(element.symbol, 0) + 1
        implicit = implicit_h_count(atom)
        if implicit:
            counts["H"] = counts.get("H", 0) + int(implicit)

    if recursive:
        for child in molecule.molecules:
            multiplier = child.count or 1
            for symbol, count in molecular_formula(child).items():
                counts[symbol] = counts.get(symbol, 0) + count * multiplier

    return {element: count for element, count in counts.items() if count > 0}


def hill_order(formula_dict: Dict[str, int]) -> list[str]:
    """Orden de Hill: C, H y luego alfabético (alfabético puro si no hay C)."""
    if "C" not in formula_dict:
        return sorted(formula_dict.keys())
    order = ["C"]
    if "H" in formula_dict:
        order.append("H")
    order.extend(sorted(e for e in formula_dict.keys() if e not in {"C", "H"}))
    return order


def format_formula(formula_dict: Dict[str, int]) -> str:
    """Formatea una fórmula usando el orden de Hill (C, H, luego alfabético).

    Args:
        formula_dict: Diccionario con símbolos de elementos y cantidades.

    Returns:
        Cadena con la fórmula formateada (p. ej., "C6H6O").

    Side Effects:
        No tiene efectos laterales.
    """
    if not formula_dict:
        return ""
    parts = []
    for element in hill_order(formula_dict):
        count = formula_dict.get(element, 0)
        if count <= 0:
            continue
        parts.append(element if count == 1 else f"{element}{count}")
    return "".join(parts)


def format_formula_spaced(formula_dict: Dict[str, int]) -> str:
    """Formato de CML con recuentos explícitos (p. ej., "C 6 H 6")."""
    parts = []
    for element in hill_order(formula_dict):
        count = formula_dict.get(element, 0)
        if count > 0:
            parts.append(f"{element} {count}")
    return " ".join(parts)
