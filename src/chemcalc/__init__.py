"""API pública de cálculos químicos auxiliares."""

from .formula import format_formula, format_formula_spaced, molecular_formula
from .mass import molecular_weight
from .valence import implicit_h_count, TYPICAL_VALENCE

__all__ = [
    "molecular_formula",
    "format_formula",
    "format_formula_spaced",
    "molecular_weight",
    "implicit_h_count",
    "TYPICAL_VALENCE",
]
