"""Diario transaccional de deshacer/rehacer.

Cada bloque de acciones queda encerrado entre dos registros "buffer"
(nivel 0). Las transacciones pueden anidarse: solo la más externa añade
los marcadores, de modo que un `undo()` revierte el bloque completo.

Las acciones registradas son comandos con `redo()`/`undo()` (p. ej.
subclases de `QUndoCommand`), nunca cierres sobre estado mutable.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Protocol

from molcore.errors import JournalCorruptedError, UnbalancedTransactionError

logger = logging.getLogger(__name__)

BUFFER_DESCRIPTION = "#buffer#"


class Command(Protocol):
    def redo(self) -> None: ...

    def undo(self) -> None: ...

    def text(self) -> str: ...


@dataclass(frozen=True)
class UndoRecord:
    """Entrada del diario: nivel de anidamiento, descripción y comando."""
    level: int
    description: str
    command: Optional[Command] = None

    def is_buffer(self) -> bool:
        return self.level == 0

    def undo(self) -> None:
        if self.command is not None:
            self.command.undo()

    def redo(self) -> None:
        if self.command is not None:
            self.command.redo()


_BUFFER_RECORD = UndoRecord(0, BUFFER_DESCRIPTION)


class UndoHandler:
    """Pilas de deshacer/rehacer con transacciones anidadas."""

    def __init__(self) -> None:
        self._undo_stack: List[UndoRecord] = []
        self._redo_stack: List[UndoRecord] = []
        self._transaction_level = 0
        self._listeners: List[Callable[["UndoHandler"], None]] = []

    def initialize(self) -> None:
        """Vacía ambas pilas (p. ej. al cargar un documento nuevo)."""
        self._undo_stack = []
        self._redo_stack = []
        self._transaction_level = 0

    @property
    def transaction_level(self) -> int:
        return self._transaction_level

    @property
    def can_undo(self) -> bool:
        return any(not record.is_buffer() for record in self._undo_stack)

    @property
    def can_redo(self) -> bool:
        return any(not record.is_buffer() for record in self._redo_stack)

    @property
    def undo_records(self) -> List[UndoRecord]:
        """Copia de la pila de deshacer (el último elemento es la cima)."""
        return list(self._undo_stack)

    @property
    def redo_records(self) -> List[UndoRecord]:
        return list(self._redo_stack)

    def add_listener(self, listener: Callable[["UndoHandler"], None]) -> None:
        """Registra un observador que se llama tras confirmar, deshacer o rehacer."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[["UndoHandler"], None]) -> None:
        self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def begin_trans(self) -> None:
        """Abre (o profundiza) una transacción."""
        if self._transaction_level == 0:
            self._undo_stack.append(_BUFFER_RECORD)
        self._transaction_level += 1

    def record_action(self, command: Command, description: Optional[str] = None) -> UndoRecord:
        """Registra un comando ya aplicado dentro de la transacción abierta.

        Args:
            command: Objeto con `undo()` y `redo()`.
            description: Texto del registro; por defecto `command.text()`.

        Returns:
            El registro apilado.

        Raises:
            UnbalancedTransactionError: Si no hay transacción abierta.

        Side Effects:
            Vacía la pila de rehacer.
        """
        if self._transaction_level == 0:
            raise UnbalancedTransactionError("Cannot record an action outside a transaction")
        if description is None:
            description = command.text() if hasattr(command, "text") else type(command).__name__
        self._redo_stack.clear()
        record = UndoRecord(self._transaction_level, description, command)
        self._undo_stack.append(record)
        return record

    def commit_trans(self) -> None:
        """Cierra el nivel de transacción actual.

        Raises:
            UnbalancedTransactionError: Si no había transacción abierta.
        """
        if self._transaction_level <= 0:
            raise UnbalancedTransactionError("Attempted to unwind empty undo stack.")
        self._transaction_level -= 1
        if self._transaction_level == 0:
            self._undo_stack.append(_BUFFER_RECORD)
        self._notify()

    @contextmanager
    def transaction(self) -> Iterator["UndoHandler"]:
        """`begin_trans()`/`commit_trans()` como gestor de contexto.

        La transacción se confirma aunque el bloque falle, para que el
        diario siga equilibrado; lo ya registrado se puede deshacer.
        """
        self.begin_trans()
        try:
            yield self
        finally:
            self.commit_trans()

    def undo(self) -> None:
        """Deshace el último bloque completo.

        Raises:
            JournalCorruptedError: Si la cima no es un registro buffer.
        """
        moved = self._unwind(self._undo_stack, self._redo_stack, "Undo", UndoRecord.undo)
        logger.debug("Undid %d action(s)", moved)
        self._notify()

    def redo(self) -> None:
        """Rehace el último bloque deshecho, en orden cronológico.

        Raises:
            JournalCorruptedError: Si la cima no es un registro buffer.
        """
        moved = self._unwind(self._redo_stack, self._undo_stack, "Redo", UndoRecord.redo)
        logger.debug("Redid %d action(s)", moved)
        self._notify()

    @staticmethod
    def _unwind(
        source: List[UndoRecord],
        target: List[UndoRecord],
        label: str,
        apply: Callable[[UndoRecord], None],
    ) -> int:
        if not source or not source[-1].is_buffer():
            raise JournalCorruptedError(f"{label} stack is missing buffer record")
        target.append(source.pop())
        moved = 0
        while True:
            if not source:
                raise JournalCorruptedError(f"{label} stack is missing buffer record")
            record = source.pop()
            target.append(record)
            if record.is_buffer():
                return moved
            apply(record)
            moved += 1
