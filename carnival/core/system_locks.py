# -*- coding: utf-8 -*-
# carnival/core/system_locks.py
# =============================================================================
# Назначение кода:
#   «Замок» исполнения Alphabet Carnival. Гарантирует, что операции движка
#   выполняются строго по одной и не переплетаются:
#   • явный маркер «операция в процессе» (OperationGuard);
#   • отказ во вложенном входе (повторный вызов движка из колбэка перевода,
#     из колбэка оракула и т.п.).
#
# Канон / инварианты:
#   • В любой момент времени исполняется не более одной операции движка.
#   • Маркер снимается в finally, даже если операция упала: упавшая операция
#     не блокирует следующие.
#   • Нарушение фиксируется как LockViolation, а не как пользовательская
#     ошибка: это попытка повторного входа, её нужно видеть в логах.
#
# Запреты:
#   • Здесь нет бизнес-логики раундов/призов. Только маркер и проверки.
# =============================================================================

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from carnival.core.logging_core import get_logger

logger = get_logger(__name__)


class LockViolation(RuntimeError):
    """
    Нарушение порядка исполнения: операция начата, пока другая ещё идёт.

    Важно:
    • Это ОШИБКА ИНТЕГРАЦИИ (реэнтрантный колбэк), а не «ошибка пользователя».
    • Верхний слой логирует её отдельно и не маскирует под internal_error.
    """


class OperationGuard:
    """
    Маркер «операция в процессе».

    Пример:
        guard = OperationGuard()
        with guard.enter("claim_prize"):
            ...  # любой guard.enter(...) внутри бросит LockViolation
    """

    def __init__(self) -> None:
        self._active: Optional[str] = None

    @property
    def active(self) -> Optional[str]:
        return self._active

    @property
    def in_progress(self) -> bool:
        return self._active is not None

    @contextmanager
    def enter(self, op: str) -> Iterator[None]:
        if self._active is not None:
            logger.warning(
                "Re-entrant operation rejected",
                extra={"active_op": self._active, "requested_op": op},
            )
            raise LockViolation(
                f"Operation '{op}' rejected: '{self._active}' is still in progress."
            )
        self._active = op
        try:
            yield
        finally:
            self._active = None


__all__ = ["LockViolation", "OperationGuard"]

# =============================================================================
# Пояснения «для чайника»:
#   • Движок входит в OperationGuard на каждой операции. Если получатель
#     выплаты пытается вызвать движок изнутри перевода, он получает
#     LockViolation, а внешняя операция откатывается целиком.
#   • Маркер снимается и при успехе, и при исключении.
# =============================================================================
