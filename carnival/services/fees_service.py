# -*- coding: utf-8 -*-
# carnival/services/fees_service.py
# =============================================================================
# Назначение кода:
#   Операционная комиссия раунда: 6% от заявленной итоговой суммы, делится
#   между двумя получателями.
#
# Канон/инварианты:
#   • fee = settlement * 6 // 100; журнал total_fees растёт на fee всегда,
#     даже если оба перевода не прошли.
#   • share1 = fee * share1_percent // 100, share2 = fee - share1.
#   • Каждый перевод независим: успех → событие FeesDistributed, отказ →
#     предупреждение в лог, без повтора и без отката операции.
#
# Запреты:
#   • Сумма settlement не перепроверяется: это доверенный вход authority.
# =============================================================================

from __future__ import annotations

from dataclasses import replace
from typing import List, Tuple

from carnival.core.errors_core import TransferError
from carnival.core.logging_core import get_logger
from carnival.integrations.treasury import Treasury
from carnival.models.events_models import CarnivalEvent, FeesDistributed
from carnival.models.state_models import CarnivalState, FeeLedger, Transition

logger = get_logger(__name__)

FEE_PERCENT = 6


def split_fee(settlement_amount: int, share_1_percent: int) -> Tuple[int, int, int]:
    """(fee, share1, share2) для заявленной суммы."""
    fee = settlement_amount * FEE_PERCENT // 100
    share1 = fee * share_1_percent // 100
    return fee, share1, fee - share1


def distribute(
    state: CarnivalState,
    treasury: Treasury,
    round_id: int,
    settlement_amount: int,
) -> Transition:
    config = state.config
    fee, share1, share2 = split_fee(settlement_amount, config.fee_share_1_percent)

    events: List[CarnivalEvent] = []
    for receiver, amount in (
        (config.fee_receiver_1, share1),
        (config.fee_receiver_2, share2),
    ):
        try:
            treasury.pay(receiver, amount)
        except TransferError as exc:
            logger.warning(
                "Fee transfer failed",
                extra={
                    "round_id": round_id,
                    "receiver": receiver,
                    "amount": str(amount),
                    "error": exc.message,
                },
            )
            continue
        events.append(FeesDistributed(round_id=round_id, receiver=receiver, amount=amount))

    new_state = replace(state, fees=FeeLedger(total_fees=state.fees.total_fees + fee))
    logger.info(
        "Fees distributed",
        extra={"round_id": round_id, "fee": str(fee), "transfers_ok": len(events)},
    )
    return Transition(state=new_state, events=tuple(events))


__all__ = ["FEE_PERCENT", "split_fee", "distribute"]
