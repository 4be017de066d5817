# -*- coding: utf-8 -*-
# carnival/models/events_models.py
# =============================================================================
# Назначение кода:
#   События движка Alphabet Carnival. Это публичный след всех операций:
#   внешний процесс authority сканирует TicketBought/WinningLettersDrawn,
#   чтобы посчитать победителей и построить Merkle-дерево.
#
# Канон/инварианты:
#   • Событие неизменяемо и сериализуется в JSON-совместимый dict
#     (bytes → 0x-hex, кортежи → списки).
#   • Имя события стабильно: оно же ключ в журнале событий БД.
# =============================================================================

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, ClassVar, Dict, Optional, Tuple


def _jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


@dataclass(frozen=True)
class CarnivalEvent:
    name: ClassVar[str] = "CarnivalEvent"

    def to_payload(self) -> Dict[str, Any]:
        return {key: _jsonable(value) for key, value in asdict(self).items()}


# -----------------------------------------------------------------------------
# Раунды и розыгрыш
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class TicketBought(CarnivalEvent):
    name: ClassVar[str] = "TicketBought"

    round_id: int
    player: str
    letters: Tuple[int, ...]


@dataclass(frozen=True)
class DrawTriggered(CarnivalEvent):
    name: ClassVar[str] = "DrawTriggered"

    round_id: int
    tickets_sold: int
    request_id: int


@dataclass(frozen=True)
class WinningLettersDrawn(CarnivalEvent):
    name: ClassVar[str] = "WinningLettersDrawn"

    round_id: int
    letters: Tuple[int, ...]
    request_id: int


@dataclass(frozen=True)
class PendingDrawCleared(CarnivalEvent):
    name: ClassVar[str] = "PendingDrawCleared"

    round_id: int
    request_id: int


# -----------------------------------------------------------------------------
# Расчёт и выплаты
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class CommitmentSubmitted(CarnivalEvent):
    name: ClassVar[str] = "CommitmentSubmitted"

    round_id: int
    root: bytes


@dataclass(frozen=True)
class FeesDistributed(CarnivalEvent):
    name: ClassVar[str] = "FeesDistributed"

    round_id: int
    receiver: str
    amount: int


@dataclass(frozen=True)
class PrizeClaimed(CarnivalEvent):
    name: ClassVar[str] = "PrizeClaimed"

    player: str
    round_id: int
    tier: int
    amount: int


# -----------------------------------------------------------------------------
# Админ-настройки
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class TicketPriceUpdated(CarnivalEvent):
    name: ClassVar[str] = "TicketPriceUpdated"

    old_price: int
    new_price: int


@dataclass(frozen=True)
class TicketsThresholdUpdated(CarnivalEvent):
    name: ClassVar[str] = "TicketsThresholdUpdated"

    old_threshold: int
    new_threshold: int


@dataclass(frozen=True)
class OperationalReceiversUpdated(CarnivalEvent):
    name: ClassVar[str] = "OperationalReceiversUpdated"

    receiver_1: str
    receiver_2: str
    share_1_percent: int


@dataclass(frozen=True)
class SubscriptionIdUpdated(CarnivalEvent):
    name: ClassVar[str] = "SubscriptionIdUpdated"

    old_subscription_id: int
    new_subscription_id: int


EVENT_TYPES: Dict[str, type] = {
    cls.name: cls
    for cls in (
        TicketBought,
        DrawTriggered,
        WinningLettersDrawn,
        PendingDrawCleared,
        CommitmentSubmitted,
        FeesDistributed,
        PrizeClaimed,
        TicketPriceUpdated,
        TicketsThresholdUpdated,
        OperationalReceiversUpdated,
        SubscriptionIdUpdated,
    )
}


def event_from_payload(name: str, payload: Dict[str, Any]) -> Optional[CarnivalEvent]:
    """Восстанавливает событие из журнала БД (None для неизвестного имени)."""
    cls = EVENT_TYPES.get(name)
    if cls is None:
        return None
    data = dict(payload)
    for key, value in data.items():
        if isinstance(value, list):
            data[key] = tuple(value)
        elif key == "root" and isinstance(value, str):
            data[key] = bytes.fromhex(value[2:] if value.startswith("0x") else value)
    return cls(**data)


__all__ = [
    "CarnivalEvent",
    "TicketBought",
    "DrawTriggered",
    "WinningLettersDrawn",
    "PendingDrawCleared",
    "CommitmentSubmitted",
    "FeesDistributed",
    "PrizeClaimed",
    "TicketPriceUpdated",
    "TicketsThresholdUpdated",
    "OperationalReceiversUpdated",
    "SubscriptionIdUpdated",
    "EVENT_TYPES",
    "event_from_payload",
]
