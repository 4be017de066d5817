# -*- coding: utf-8 -*-
# carnival/services/claims_service.py
# =============================================================================
# Назначение кода:
#   Merkle-реестр призов: одноразовая публикация корня раунда authority и
#   выплата приза по доказательству включения.
#
# Канон/инварианты:
#   • Корень: 32 ненулевых байта, публикуется только для разыгранного раунда
#     и только один раз. Вместе с корнем распределяется комиссия раунда.
#   • Лист погашается не больше одного раза за всё время жизни системы.
#   • Порядок выплаты: проверки → пометка «погашен» → перевод. Отказ перевода
#     отменяет всю операцию, включая пометку.
#
# Запреты:
#   • settlement_amount не сверяется с пулом раунда (доверенный вход).
# =============================================================================

from __future__ import annotations

from dataclasses import replace
from typing import List, Sequence, Union

from carnival.core.errors_core import ProofError, StateError, ValidationError
from carnival.core.logging_core import get_logger
from carnival.core.security_core import require_authority, require_player
from carnival.integrations.treasury import Treasury
from carnival.models.events_models import CommitmentSubmitted, PrizeClaimed
from carnival.models.state_models import CarnivalState, PrizeClaim, Transition
from carnival.schemas.carnival_schemas import hex32_to_bytes
from carnival.services.fees_service import distribute
from carnival.services.merkle_service import hash_claim_leaf, verify_proof

logger = get_logger(__name__)

ZERO_ROOT = b"\x00" * 32
ProofNode = Union[bytes, bytearray, str]


def _proof_nodes(proof: Sequence[ProofNode]) -> List[bytes]:
    """Узлы доказательства: 32 байта либо 0x-hex (формат getHexProof)."""
    try:
        return [hex32_to_bytes(node) for node in proof]
    except (TypeError, ValueError):
        raise ProofError("Proof nodes must be 32 bytes.")


def submit_commitment(
    state: CarnivalState,
    treasury: Treasury,
    caller: str,
    round_id: int,
    root: bytes,
    settlement_amount: int,
) -> Transition:
    require_authority(state.config, caller)

    if not isinstance(root, (bytes, bytearray)) or len(root) != 32:
        raise ValidationError("Merkle root must be exactly 32 bytes.")
    root = bytes(root)
    if root == ZERO_ROOT:
        raise ValidationError("Merkle root must not be zero.")
    if isinstance(settlement_amount, bool) or not isinstance(settlement_amount, int) or settlement_amount < 0:
        raise ValidationError("Settlement amount must be a non-negative integer.")

    record = state.round(round_id)
    if record.is_settled:
        raise StateError("Merkle root already submitted for this round.", details={"round_id": round_id})
    if not record.is_drawn:
        raise StateError("Winning letters not drawn for this round.", details={"round_id": round_id})

    # Доверенный вход: только фиксируем в логе.
    logger.info(
        "Commitment accepted",
        extra={
            "round_id": round_id,
            "settlement_amount": str(settlement_amount),
            "round_prize_pool": str(record.prize_pool),
        },
    )

    committed = state.with_round(replace(record, merkle_root=root))
    fees = distribute(committed, treasury, round_id, settlement_amount)
    return Transition(
        state=fees.state,
        events=fees.events + (CommitmentSubmitted(round_id=round_id, root=root),),
    )


def claim_prize(
    state: CarnivalState,
    treasury: Treasury,
    caller: str,
    claim: PrizeClaim,
    proof: Sequence[ProofNode],
) -> Transition:
    require_player(claim.player, caller)

    root = state.round(claim.round_id).merkle_root
    if root is None:
        raise StateError("Merkle root not set for this round.", details={"round_id": claim.round_id})

    digest = hash_claim_leaf(claim)
    if state.is_claimed(digest):
        raise ProofError("Prize already claimed.", details={"leaf": "0x" + digest.hex()})

    nodes = _proof_nodes(proof)
    if not verify_proof(nodes, root, digest):
        raise ProofError("Invalid Merkle proof.", details={"round_id": claim.round_id})

    claimed = replace(state, claimed=state.claimed | {digest})
    treasury.pay(claim.player, claim.amount)

    logger.info(
        "Prize claimed",
        extra={"round_id": claim.round_id, "tier": claim.tier, "amount": str(claim.amount)},
    )
    return Transition(
        state=claimed,
        events=(
            PrizeClaimed(
                player=claim.player,
                round_id=claim.round_id,
                tier=claim.tier,
                amount=claim.amount,
            ),
        ),
    )


__all__ = ["submit_commitment", "claim_prize"]

# =============================================================================
# Пояснения «для чайника»:
#   • Корень раунда публикует только authority и только один раз; в той же
#     операции выплачиваются комиссии.
#   • Игрок присылает лист и доказательство. Узлы можно передавать как
#     32 байта или как 0x-hex, как их отдаёт getHexProof.
#   • Лист помечается выплаченным до перевода. Если перевод упал, движок
#     откатывает и пометку.
# =============================================================================
