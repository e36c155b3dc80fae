"""API pública del grafo molecular.

Reexpone las clases del modelo químico para facilitar importaciones.
"""

from molcore.container import Model
from molcore.elements import PERIODIC_TABLE, Element, FunctionalGroup, get_element
from molcore.errors import (
    ChemGraphError,
    JournalCorruptedError,
    PreconditionError,
    UnbalancedTransactionError,
)
from molcore.model import (
    DEFAULT_BOND_LENGTH,
    Atom,
    Bond,
    BondDirection,
    BondOrder,
    BondStereo,
    Ring,
)
from molcore.molecule import Molecule
from molcore.rings import RingStrategy

__all__ = [
    "Atom",
    "Bond",
    "BondDirection",
    "BondOrder",
    "BondStereo",
    "ChemGraphError",
    "DEFAULT_BOND_LENGTH",
    "Element",
    "FunctionalGroup",
    "JournalCorruptedError",
    "Model",
    "Molecule",
    "PERIODIC_TABLE",
    "PreconditionError",
    "Ring",
    "RingStrategy",
    "UnbalancedTransactionError",
    "get_element",
]
