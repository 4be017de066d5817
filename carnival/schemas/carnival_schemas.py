# -*- coding: utf-8 -*-
# carnival/schemas/carnival_schemas.py
# =============================================================================
# Назначение кода:
# Pydantic-схемы проводного формата Alphabet Carnival: заявка на приз (лист
# Merkle-дерева + доказательство), публикация Merkle-корня authority и снимок
# раунда для внешних наблюдателей.
#
# Канон / инварианты:
# • Адрес игрока приводится к checksum-виду.
# • letters: ровно три значения uint8 (0..255), tier: uint8.
# • Корень и элементы доказательства: 0x + 64 hex-символа (32 байта).
# • Суммы в wei: на вход целое >= 0, наружу десятичной СТРОКОЙ.
#
# Запреты:
# • В схемах нет бизнес-логики, только форма данных и перевод в доменные типы.
# =============================================================================

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from carnival.core.config_core import normalize_address
from carnival.models.state_models import PrizeClaim, RoundRecord

UINT256_MAX = 2**256 - 1


def hex32_to_bytes(value: Any) -> bytes:
    """0x-hex (или bytes) длиной 32 байта → bytes. Бросает ValueError."""
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        text_value = str(value or "").strip()
        if text_value.startswith(("0x", "0X")):
            text_value = text_value[2:]
        try:
            raw = bytes.fromhex(text_value)
        except ValueError:
            raise ValueError("expected 0x-prefixed hex")
    if len(raw) != 32:
        raise ValueError("expected exactly 32 bytes")
    return raw


def bytes_to_hex(value: Optional[bytes]) -> Optional[str]:
    if value is None:
        return None
    return "0x" + value.hex()


# =============================================================================
# Заявка на приз
# -----------------------------------------------------------------------------
class ClaimIn(BaseModel):
    """Лист Merkle-дерева: (player, letters[3], tier, amount, round)."""

    model_config = ConfigDict(frozen=True)

    player: str = Field(..., description="Адрес победителя")
    letters: Tuple[int, int, int] = Field(..., description="Три буквы билета (uint8)")
    tier: int = Field(..., ge=0, le=255, description="Уровень приза (uint8)")
    amount: int = Field(..., ge=0, le=UINT256_MAX, description="Сумма приза в wei")
    round: int = Field(..., ge=1, le=UINT256_MAX, description="Номер раунда")

    @field_validator("player", mode="before")
    @classmethod
    def _v_player(cls, v: Any) -> str:
        return normalize_address(v)

    @field_validator("letters")
    @classmethod
    def _v_letters(cls, v: Tuple[int, int, int]) -> Tuple[int, int, int]:
        for item in v:
            if item < 0 or item > 255:
                raise ValueError("each letter must fit uint8 (0..255)")
        return v

    def to_domain(self) -> PrizeClaim:
        return PrizeClaim(
            player=self.player,
            letters=tuple(self.letters),  # type: ignore[arg-type]
            tier=self.tier,
            amount=self.amount,
            round_id=self.round,
        )


class ClaimRequestIn(BaseModel):
    """Заявка игрока: лист + путь доказательства (соседние узлы снизу вверх)."""

    claim: ClaimIn
    proof: List[str] = Field(default_factory=list, description="0x-hex узлы доказательства")

    @field_validator("proof")
    @classmethod
    def _v_proof(cls, v: List[str]) -> List[str]:
        return [bytes_to_hex(hex32_to_bytes(node)) for node in v]  # type: ignore[misc]

    def proof_bytes(self) -> List[bytes]:
        return [hex32_to_bytes(node) for node in self.proof]

    def to_domain(self) -> Tuple[PrizeClaim, List[bytes]]:
        return self.claim.to_domain(), self.proof_bytes()


# =============================================================================
# Публикация корня
# -----------------------------------------------------------------------------
class CommitmentIn(BaseModel):
    round: int = Field(..., ge=1, description="Номер разыгранного раунда")
    root: str = Field(..., description="Merkle-корень, 0x + 64 hex")
    settlement_amount: int = Field(
        ...,
        ge=0,
        le=UINT256_MAX,
        description="Итоговая сумма раунда, от которой считается комиссия",
    )

    @field_validator("root")
    @classmethod
    def _v_root(cls, v: str) -> str:
        raw = hex32_to_bytes(v)
        if raw == b"\x00" * 32:
            raise ValueError("root must not be zero")
        return "0x" + raw.hex()

    def root_bytes(self) -> bytes:
        return hex32_to_bytes(self.root)


# =============================================================================
# Снимок раунда
# -----------------------------------------------------------------------------
class RoundOut(BaseModel):
    """
    Снимок раунда для наблюдателей.

    Для открытого раунда tickets_sold / prize_pool живые; для закрытого это
    итоги на момент розыгрыша.
    """

    round: int
    is_open: bool
    tickets_sold: int = Field(..., ge=0)
    prize_pool_wei: str
    winning_letters: List[int] = Field(default_factory=list)
    merkle_root: Optional[str] = None
    draw_request_id: Optional[str] = None
    server_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_record(
        cls,
        record: RoundRecord,
        *,
        is_open: bool,
        tickets_sold: int,
        prize_pool: int,
    ) -> "RoundOut":
        return cls(
            round=record.round_id,
            is_open=is_open,
            tickets_sold=tickets_sold,
            prize_pool_wei=str(prize_pool),
            winning_letters=list(record.winning_letters),
            merkle_root=bytes_to_hex(record.merkle_root),
            draw_request_id=(
                str(record.draw_request_id) if record.draw_request_id is not None else None
            ),
        )


__all__ = [
    "UINT256_MAX",
    "hex32_to_bytes",
    "bytes_to_hex",
    "ClaimIn",
    "ClaimRequestIn",
    "CommitmentIn",
    "RoundOut",
]
