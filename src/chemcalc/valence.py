"""Cálculo de hidrógenos implícitos según valencias típicas."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Dict

from molcore.elements import Element

if TYPE_CHECKING:
    from molcore.model import Atom

# Valencias típicas usadas para inferir H implícitos (subconjunto orgánico).
TYPICAL_VALENCE: Dict[str, int] = {
    "H": 1,
    "B": 3,
    "C": 4,
    "N": 3,
    "O": 2,
    "F": 1,
    "Cl": 1,
    "Br": 1,
    "I": 1,
    "S": 2,
    "P": 3,
}

# Estos heteroátomos ganan un enlace por carga positiva (NH4+, H3O+).
_CHARGE_ACCEPTORS = {"N", "O", "S", "P"}


def implicit_h_count(atom: "Atom") -> int:
    """Calcula los hidrógenos implícitos para un átomo.

    Args:
        atom: Átomo ya conectado a su molécula (usa sus enlaces).

    Returns:
        Número de H implícitos estimados (>= 0). Los átomos sin elemento,
        los grupos funcionales y los elementos fuera del subconjunto
        orgánico devuelven 0.

    Side Effects:
        No tiene efectos laterales.
    """
    element = atom.element
    if not isinstance(element, Element):
        return 0
    typical = TYPICAL_VALENCE.get(element.symbol)
    if typical is None:
        return 0

    bond_order_sum = int(math.trunc(atom.bond_order_sum))
    charge = atom.formal_charge or 0
    if element.symbol in _CHARGE_ACCEPTORS:
        implicit = typical + charge - bond_order_sum
    else:
        implicit = typical - abs(charge) - bond_order_sum
    if implicit < 0:
        return 0
    return int(implicit)
