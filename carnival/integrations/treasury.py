# -*- coding: utf-8 -*-
# carnival/integrations/treasury.py
# =============================================================================
# Alphabet Carnival: казна (приём оплаты билетов и исходящие переводы)
# -----------------------------------------------------------------------------
# Назначение:
#   • Протокол Treasury: credit() принимает оплату билета, pay() переводит
#     приз или комиссию получателю.
#   • InMemoryTreasury хранит баланс в памяти процесса и умеет имитировать
#     отказ получателя (rejecting) и обратный вызов получателя (on_pay).
#
# Канон/инварианты:
#   • Неудачный перевод всегда выражается TransferError; баланс при этом
#     не меняется.
#   • Баланс не уходит в минус.
#
# Запреты:
#   • Казна не знает о раундах и листьях: только адреса и суммы в wei.
# =============================================================================
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, Set, Tuple

from carnival.core.errors_core import TransferError
from carnival.core.logging_core import get_logger

logger = get_logger(__name__)

# on_pay(recipient, amount): код получателя, исполняемый при переводе.
PayHook = Callable[[str, int], None]


class Treasury(Protocol):
    @property
    def balance(self) -> int:
        ...

    def credit(self, payer: str, amount: int) -> None:
        ...

    def pay(self, recipient: str, amount: int) -> None:
        """Переводит amount получателю или бросает TransferError."""
        ...


@dataclass
class InMemoryTreasury:
    """
    Казна в памяти процесса.

    Пример:
        treasury = InMemoryTreasury(rejecting={bad_receiver})
        treasury.pay(bad_receiver, 1)  # TransferError
    """

    balance: int = 0
    rejecting: Set[str] = field(default_factory=set)
    on_pay: Optional[PayHook] = None
    payments: List[Tuple[str, int]] = field(default_factory=list)
    credits: List[Tuple[str, int]] = field(default_factory=list)

    def credit(self, payer: str, amount: int) -> None:
        if amount < 0:
            raise TransferError("Negative credit amount.", details={"amount": amount})
        self.balance += amount
        self.credits.append((payer, amount))

    def pay(self, recipient: str, amount: int) -> None:
        if amount < 0:
            raise TransferError("Negative transfer amount.", details={"amount": amount})
        if recipient.lower() in {r.lower() for r in self.rejecting}:
            raise TransferError("Recipient rejected the transfer.", details={"recipient": recipient})
        if amount > self.balance:
            raise TransferError(
                "Insufficient treasury balance.",
                details={"recipient": recipient, "amount": amount, "balance": self.balance},
            )

        if self.on_pay is not None:
            try:
                self.on_pay(recipient, amount)
            except Exception as exc:
                logger.warning(
                    "Recipient hook failed, transfer reverted",
                    extra={"recipient": recipient, "error_type": type(exc).__name__},
                )
                raise TransferError(
                    "Recipient rejected the transfer.",
                    details={"recipient": recipient, "reason": type(exc).__name__},
                ) from exc

        self.balance -= amount
        self.payments.append((recipient, amount))
        logger.info("Transfer completed", extra={"recipient": recipient, "amount": str(amount)})

    def paid_to(self, recipient: str) -> int:
        return sum(amount for who, amount in self.payments if who.lower() == recipient.lower())


__all__ = ["PayHook", "Treasury", "InMemoryTreasury"]
