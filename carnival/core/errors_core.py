# -*- coding: utf-8 -*-
# carnival/core/errors_core.py
# =============================================================================
# Назначение кода:
#   • Единый слой ошибок Alphabet Carnival.
#   • Канонические коды ошибок для вызывающей стороны и логов.
#
# Канон / инварианты:
#   • Операции движка бросают ТОЛЬКО доменные исключения из этого модуля
#     (или LockViolation из system_locks).
#   • Любая ошибка откатывает операцию целиком; единственное исключение:
#     неудачный перевод комиссии одному получателю (fees_service).
#   • Вызывающий всегда получает конкретный code + message.
#
# ИИ-защита:
#   • Неизвестная ошибка нормализуется в internal_error без деталей.
#
# Запреты:
#   • Никакой бизнес-логики здесь.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from carnival.core.logging_core import get_logger
from carnival.core.system_locks import LockViolation

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Базовая доменная ошибка
# -----------------------------------------------------------------------------
@dataclass(eq=False)
class CarnivalError(Exception):
    """
    Базовое доменное исключение.

    Поля:
      • code    : стабильный машинный код ошибки (snake_case).
      • message : короткое безопасное сообщение.
      • details : безопасные детали, опционально.
    """

    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


# -----------------------------------------------------------------------------
# Таксономия
# -----------------------------------------------------------------------------
class ValidationError(CarnivalError):
    """Некорректный вход: неверная оплата, нулевая цена/порог, доля > 100."""

    def __init__(
        self,
        message: str = "Invalid data.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="validation_error",
            message=message,
            details=details or {},
        )


class StateError(CarnivalError):
    """Операция в неподходящей фазе жизненного цикла раунда."""

    def __init__(
        self,
        message: str = "Operation not allowed in current state.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="state_error",
            message=message,
            details=details or {},
        )


class AuthorizationError(CarnivalError):
    """Инициатор не тот, кого требует привилегированная операция."""

    def __init__(
        self,
        message: str = "Caller is not authorized.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="authorization_error",
            message=message,
            details=details or {},
        )


class ProofError(CarnivalError):
    """Лист уже погашен или не проходит проверку включения в Merkle-корень."""

    def __init__(
        self,
        message: str = "Invalid Merkle proof.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="proof_error",
            message=message,
            details=details or {},
        )


class TransferError(CarnivalError):
    """Перевод приза или комиссии не состоялся."""

    def __init__(
        self,
        message: str = "Transfer failed.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="transfer_error",
            message=message,
            details=details or {},
        )


# -----------------------------------------------------------------------------
# Нормализация исключений → payload
# -----------------------------------------------------------------------------
def normalize_exception(exc: BaseException) -> Tuple[str, Dict[str, Any]]:
    """
    Приводит произвольное исключение к каноническому ответу (code, payload).

    Правила:
      • CarnivalError  → свой code + to_payload().
      • LockViolation  → "lock_violation" + текст.
      • Любая другая   → "internal_error" без деталей.
    """
    if isinstance(exc, CarnivalError):
        return exc.code, exc.to_payload()

    if isinstance(exc, LockViolation):
        return "lock_violation", {"error": "lock_violation", "message": str(exc)}

    logger.error("Unhandled exception", extra={"error_type": type(exc).__name__})
    return "internal_error", {
        "error": "internal_error",
        "message": "Internal error.",
    }


__all__ = [
    "CarnivalError",
    "ValidationError",
    "StateError",
    "AuthorizationError",
    "ProofError",
    "TransferError",
    "normalize_exception",
]

# =============================================================================
# Пояснения «для чайника»:
#   • Сервисы бросают только наследников CarnivalError. Код ошибки стабилен,
#     по нему вызывающая сторона решает, что показать пользователю.
#   • normalize_exception() превращает любое исключение в (code, payload).
#     Всё незнакомое становится internal_error без текста исходной ошибки.
# =============================================================================
