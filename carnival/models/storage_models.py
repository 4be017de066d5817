# -*- coding: utf-8 -*-
# carnival/models/storage_models.py
# =============================================================================
# Назначение кода:
#   SQLAlchemy-таблицы хранилища Alphabet Carnival: снимок состояния движка
#   (одна строка), история раундов, ожидающие запросы случайности, погашенные
#   листья и журнал событий.
#
# Канон/инварианты:
#   • uint256-величины (цены, суммы, id запросов) храним строками в десятичном
#     виде: ни BIGINT, ни NUMERIC не покрывают весь диапазон на всех СУБД.
#   • Merkle-корень и дайджест листа: 0x + 64 hex-символа.
#   • carnival_state всегда содержит не больше одной строки (id = 1).
#   • Погашенный лист уникален (первичный ключ по дайджесту).
#
# Запреты:
#   • Никакой логики переходов: модели только описывают структуру данных.
# =============================================================================

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from carnival.core.database_core import Base

STATE_ROW_ID = 1


class CarnivalStateRow(Base):
    """Снимок живых счётчиков и конфигурации движка."""

    __tablename__ = "carnival_state"
    __table_args__ = (
        CheckConstraint(f"id = {STATE_ROW_ID}", name="carnival_state_singleton"),
        CheckConstraint("current_round >= 1", name="carnival_state_round_pos"),
        CheckConstraint("tickets_sold >= 0", name="carnival_state_tickets_nonneg"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=STATE_ROW_ID)

    current_round: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    tickets_sold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    prize_pool: Mapped[str] = mapped_column(String(80), nullable=False, default="0")
    total_fees: Mapped[str] = mapped_column(String(80), nullable=False, default="0")

    # Конфигурация (меняется админ-операциями)
    ticket_price: Mapped[str] = mapped_column(String(80), nullable=False)
    tickets_threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    admin: Mapped[str] = mapped_column(String(42), nullable=False)
    authority: Mapped[str] = mapped_column(String(42), nullable=False)
    fee_receiver_1: Mapped[str] = mapped_column(String(42), nullable=False)
    fee_receiver_2: Mapped[str] = mapped_column(String(42), nullable=False)
    fee_share_1_percent: Mapped[int] = mapped_column(Integer, nullable=False)
    key_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    subscription_id: Mapped[str] = mapped_column(String(80), nullable=False)
    request_confirmations: Mapped[int] = mapped_column(Integer, nullable=False)
    callback_gas_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    native_payment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )


class CarnivalRoundRow(Base):
    """История раунда: выигрышные буквы, корень, итоги закрытого раунда."""

    __tablename__ = "carnival_rounds"

    round_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    winning_letters: Mapped[List[int]] = mapped_column(JSON, nullable=False, default=list)
    merkle_root: Mapped[Optional[str]] = mapped_column(String(66), nullable=True)
    tickets_sold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    prize_pool: Mapped[str] = mapped_column(String(80), nullable=False, default="0")
    draw_request_id: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)


class PendingDrawRow(Base):
    """Корреляция request_id → round_id. Не больше одной строки одновременно."""

    __tablename__ = "carnival_pending_draws"

    request_id: Mapped[str] = mapped_column(String(80), primary_key=True)
    round_id: Mapped[int] = mapped_column(Integer, nullable=False)


class ClaimedLeafRow(Base):
    __tablename__ = "carnival_claimed_leaves"

    digest: Mapped[str] = mapped_column(String(66), primary_key=True)
    claimed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )


class CarnivalEventRow(Base):
    """Журнал событий в порядке эмиссии (seq = позиция в журнале движка)."""

    __tablename__ = "carnival_events"
    __table_args__ = (
        Index("ix_carnival_events_name", "name"),
        Index("ix_carnival_events_seq", "seq", unique=True),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )


__all__ = [
    "STATE_ROW_ID",
    "CarnivalStateRow",
    "CarnivalRoundRow",
    "PendingDrawRow",
    "ClaimedLeafRow",
    "CarnivalEventRow",
]
