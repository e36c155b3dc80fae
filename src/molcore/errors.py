"""Excepciones del núcleo de grafos moleculares."""


class ChemGraphError(Exception):
    """Base de todos los errores del núcleo."""


class PreconditionError(ChemGraphError, ValueError):
    """Se lanza cuando el llamador viola un contrato (error de programación)."""


class UnbalancedTransactionError(ChemGraphError, IndexError):
    """Se lanza ante transacciones de deshacer desbalanceadas."""


class JournalCorruptedError(ChemGraphError, RuntimeError):
    """Se lanza cuando la pila de deshacer/rehacer perdió un registro separador."""
