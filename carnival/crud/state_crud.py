# -*- coding: utf-8 -*-
# carnival/crud/state_crud.py
# =============================================================================
# Назначение:
#   • CRUD снимка состояния Alphabet Carnival: строка состояния, раунды,
#     ожидающие запросы, погашенные листья, журнал событий.
#   • Перевод между неизменяемым CarnivalState и строками таблиц.
#
# Канон/инварианты:
#   • save_state() перезаписывает снимок целиком: лишние строки раундов и
#     ожидающих запросов удаляются, погашенные листья только добавляются.
#   • Журнал событий только дописывается, seq строго растёт.
#   • uint256 → десятичная строка, bytes32 → 0x-hex.
#
# Запреты:
#   • CRUD не коммитит: границы транзакции задаёт вызывающий сервис.
#   • Никаких правил лотереи внутри слоя CRUD.
# =============================================================================
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from carnival.models.events_models import CarnivalEvent, event_from_payload
from carnival.models.state_models import (
    CarnivalConfig,
    CarnivalState,
    FeeLedger,
    RoundRecord,
)
from carnival.models.storage_models import (
    STATE_ROW_ID,
    CarnivalEventRow,
    CarnivalRoundRow,
    CarnivalStateRow,
    ClaimedLeafRow,
    PendingDrawRow,
)


def _hex(value: Optional[bytes]) -> Optional[str]:
    return None if value is None else "0x" + value.hex()


def _unhex(value: Optional[str]) -> Optional[bytes]:
    if value is None:
        return None
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)


class CarnivalStateCRUD:
    """CRUD-обёртка снимка состояния движка."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ------------------------------------------------------------------ state
    async def load_state(self) -> Optional[CarnivalState]:
        """Снимок из БД или None, если движок ещё не сохранялся."""

        row = await self.session.get(CarnivalStateRow, STATE_ROW_ID)
        if row is None:
            return None

        config = CarnivalConfig(
            ticket_price=int(row.ticket_price),
            tickets_threshold=row.tickets_threshold,
            admin=row.admin,
            authority=row.authority,
            fee_receiver_1=row.fee_receiver_1,
            fee_receiver_2=row.fee_receiver_2,
            fee_share_1_percent=row.fee_share_1_percent,
            key_hash=row.key_hash,
            subscription_id=int(row.subscription_id),
            request_confirmations=row.request_confirmations,
            callback_gas_limit=row.callback_gas_limit,
            native_payment=row.native_payment,
        )

        rounds: Dict[int, RoundRecord] = {}
        for r in await self.session.scalars(select(CarnivalRoundRow).order_by(CarnivalRoundRow.round_id)):
            rounds[r.round_id] = RoundRecord(
                round_id=r.round_id,
                winning_letters=tuple(r.winning_letters or ()),
                merkle_root=_unhex(r.merkle_root),
                tickets_sold=r.tickets_sold,
                prize_pool=int(r.prize_pool),
                draw_request_id=int(r.draw_request_id) if r.draw_request_id is not None else None,
            )

        pending = {
            int(p.request_id): p.round_id
            for p in await self.session.scalars(select(PendingDrawRow))
        }
        claimed = frozenset(
            _unhex(digest) for digest in await self.session.scalars(select(ClaimedLeafRow.digest))
        )

        return CarnivalState(
            config=config,
            current_round=row.current_round,
            tickets_sold=row.tickets_sold,
            prize_pool=int(row.prize_pool),
            pending_draws=pending,
            rounds=rounds,
            claimed=claimed,  # type: ignore[arg-type]
            fees=FeeLedger(total_fees=int(row.total_fees)),
        )

    async def save_state(self, state: CarnivalState) -> None:
        """Перезаписать снимок состояния (merge по первичным ключам)."""

        cfg = state.config
        await self.session.merge(
            CarnivalStateRow(
                id=STATE_ROW_ID,
                current_round=state.current_round,
                tickets_sold=state.tickets_sold,
                prize_pool=str(state.prize_pool),
                total_fees=str(state.fees.total_fees),
                ticket_price=str(cfg.ticket_price),
                tickets_threshold=cfg.tickets_threshold,
                admin=cfg.admin,
                authority=cfg.authority,
                fee_receiver_1=cfg.fee_receiver_1,
                fee_receiver_2=cfg.fee_receiver_2,
                fee_share_1_percent=cfg.fee_share_1_percent,
                key_hash=cfg.key_hash,
                subscription_id=str(cfg.subscription_id),
                request_confirmations=cfg.request_confirmations,
                callback_gas_limit=cfg.callback_gas_limit,
                native_payment=cfg.native_payment,
            )
        )

        await self.session.execute(
            delete(CarnivalRoundRow).where(CarnivalRoundRow.round_id.not_in(list(state.rounds)))
        )
        for record in state.rounds.values():
            await self.session.merge(
                CarnivalRoundRow(
                    round_id=record.round_id,
                    winning_letters=list(record.winning_letters),
                    merkle_root=_hex(record.merkle_root),
                    tickets_sold=record.tickets_sold,
                    prize_pool=str(record.prize_pool),
                    draw_request_id=(
                        str(record.draw_request_id) if record.draw_request_id is not None else None
                    ),
                )
            )

        await self.session.execute(delete(PendingDrawRow))
        for request_id, round_id in state.pending_draws.items():
            await self.session.merge(PendingDrawRow(request_id=str(request_id), round_id=round_id))

        stored = set(await self.session.scalars(select(ClaimedLeafRow.digest)))
        for digest in state.claimed:
            key = _hex(digest)
            if key not in stored:
                self.session.add(ClaimedLeafRow(digest=key))

        await self.session.flush()

    # ----------------------------------------------------------------- events
    async def count_events(self) -> int:
        total = await self.session.scalar(select(func.count()).select_from(CarnivalEventRow))
        return int(total or 0)

    async def append_events(self, events: Iterable[CarnivalEvent], *, start_seq: int) -> int:
        """Дописать события начиная с позиции start_seq; вернуть число записанных."""

        written = 0
        for offset, event in enumerate(events):
            self.session.add(
                CarnivalEventRow(
                    seq=start_seq + offset,
                    name=event.name,
                    payload=event.to_payload(),
                )
            )
            written += 1
        await self.session.flush()
        return written

    async def list_events(self, *, name: Optional[str] = None) -> List[Tuple[int, CarnivalEvent]]:
        """Журнал событий по возрастанию seq (неизвестные имена пропускаются)."""

        stmt = select(CarnivalEventRow).order_by(CarnivalEventRow.seq.asc())
        if name is not None:
            stmt = stmt.where(CarnivalEventRow.name == name)
        result: List[Tuple[int, CarnivalEvent]] = []
        for row in await self.session.scalars(stmt):
            event = event_from_payload(row.name, row.payload)
            if event is not None:
                result.append((row.seq, event))
        return result


__all__ = ["CarnivalStateCRUD"]
