"""Capa de edición: diario de deshacer/rehacer, comandos y sesión."""

from editing.session import EditSession
from editing.undo import UndoHandler, UndoRecord

__all__ = ["EditSession", "UndoHandler", "UndoRecord"]
