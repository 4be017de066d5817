# -*- coding: utf-8 -*-
# carnival/models/state_models.py
# =============================================================================
# Назначение кода:
#   Неизменяемое состояние лотереи Alphabet Carnival: конфигурация, раунды,
#   таблица ожидающих запросов случайности, множество погашенных листьев,
#   журнал комиссий. Всё состояние процесса живёт в ОДНОМ объекте
#   CarnivalState, который операции принимают и возвращают в новом виде.
#
# Канон/инварианты:
#   • Номер раунда начинается с 1 и растёт только при исполнении розыгрыша.
#   • Выигрышные буквы раунда: либо пусто, либо ровно 8 различных значений 1..26.
#   • Merkle-корень раунда записывается один раз и только после розыгрыша.
#   • В таблице pending_draws не больше одной записи (single-flight).
#   • Погашенный дайджест листа остаётся погашенным навсегда.
#
# Запреты:
#   • Никаких мутаций на месте: только dataclasses.replace / новые коллекции.
#   • Никакой логики переходов: переходы живут в services/*.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Tuple

from carnival.models.events_models import CarnivalEvent


def _freeze(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class CarnivalConfig:
    """Настраиваемые параметры движка (меняются только админ-операциями)."""

    ticket_price: int
    tickets_threshold: int
    admin: str
    authority: str
    fee_receiver_1: str
    fee_receiver_2: str
    fee_share_1_percent: int
    key_hash: str
    subscription_id: int
    request_confirmations: int = 3
    callback_gas_limit: int = 500_000
    native_payment: bool = False


@dataclass(frozen=True)
class RoundRecord:
    """
    История раунда.

    tickets_sold / prize_pool фиксируются в момент розыгрыша (итог закрытого
    раунда); живые счётчики открытого раунда лежат в CarnivalState.
    """

    round_id: int
    winning_letters: Tuple[int, ...] = ()
    merkle_root: Optional[bytes] = None
    tickets_sold: int = 0
    prize_pool: int = 0
    draw_request_id: Optional[int] = None

    @property
    def is_drawn(self) -> bool:
        return len(self.winning_letters) > 0

    @property
    def is_settled(self) -> bool:
        return self.merkle_root is not None


@dataclass(frozen=True)
class FeeLedger:
    total_fees: int = 0


@dataclass(frozen=True)
class PrizeClaim:
    """Кортеж листа: ровно то, что authority хэширует в Merkle-дерево."""

    player: str
    letters: Tuple[int, int, int]
    tier: int
    amount: int
    round_id: int


@dataclass(frozen=True)
class CarnivalState:
    config: CarnivalConfig
    current_round: int = 1
    tickets_sold: int = 0
    prize_pool: int = 0
    # request_id -> round_id
    pending_draws: Mapping[int, int] = field(default_factory=dict)
    rounds: Mapping[int, RoundRecord] = field(default_factory=dict)
    claimed: FrozenSet[bytes] = frozenset()
    fees: FeeLedger = FeeLedger()

    def __post_init__(self) -> None:
        object.__setattr__(self, "pending_draws", _freeze(self.pending_draws))
        object.__setattr__(self, "rounds", _freeze(self.rounds))
        object.__setattr__(self, "claimed", frozenset(self.claimed))

    @property
    def is_request_pending(self) -> bool:
        return len(self.pending_draws) > 0

    def round(self, round_id: int) -> RoundRecord:
        """Запись раунда; для ещё не тронутого раунда возвращает пустую."""
        return self.rounds.get(round_id) or RoundRecord(round_id=round_id)

    def with_round(self, record: RoundRecord) -> "CarnivalState":
        rounds = dict(self.rounds)
        rounds[record.round_id] = record
        return replace(self, rounds=rounds)

    def is_claimed(self, digest: bytes) -> bool:
        return digest in self.claimed


@dataclass(frozen=True)
class Transition:
    """Результат операции: новое состояние плюс события в порядке эмиссии."""

    state: CarnivalState
    events: Tuple[CarnivalEvent, ...] = ()

    def then(self, other: "Transition") -> "Transition":
        return Transition(state=other.state, events=self.events + other.events)


__all__ = [
    "CarnivalConfig",
    "RoundRecord",
    "FeeLedger",
    "PrizeClaim",
    "CarnivalState",
    "Transition",
]
