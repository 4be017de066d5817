# -*- coding: utf-8 -*-
# carnival/services/randomness_service.py
# =============================================================================
# Назначение кода:
#   Протокол обмена со случайностью: выдача запроса координатору и приём
#   ответа по id запроса (корреляционному токену).
#
# Канон/инварианты:
#   • Одновременно ожидается не больше одного запроса (single-flight).
#   • Ответ принимается только для id из таблицы ожидания и ровно один раз.
#   • Ответ несёт ровно одно слово uint256.
#
# Запреты:
#   • Здесь не меняются номер раунда и счётчики: это делает rounds_service.
# =============================================================================

from __future__ import annotations

from dataclasses import replace
from typing import Sequence, Tuple

from carnival.core.errors_core import StateError, ValidationError
from carnival.core.logging_core import get_logger
from carnival.integrations.vrf_coordinator import (
    RandomWordsRequest,
    VRFCoordinator,
    VRFCoordinatorError,
)
from carnival.models.state_models import CarnivalConfig, CarnivalState

logger = get_logger(__name__)

NUM_WORDS = 1
UINT256_MAX = 2**256 - 1


def build_request(config: CarnivalConfig) -> RandomWordsRequest:
    return RandomWordsRequest(
        key_hash=config.key_hash,
        subscription_id=config.subscription_id,
        request_confirmations=config.request_confirmations,
        callback_gas_limit=config.callback_gas_limit,
        num_words=NUM_WORDS,
        native_payment=config.native_payment,
    )


def request_randomness(
    state: CarnivalState,
    coordinator: VRFCoordinator,
) -> Tuple[int, CarnivalState]:
    """
    Выдаёт запрос для текущего раунда и записывает корреляцию
    request_id → round_id.
    """
    if state.is_request_pending:
        raise StateError(
            "Randomness request already pending.",
            details={"pending": sorted(state.pending_draws)},
        )

    try:
        request_id = int(coordinator.request_random_words(build_request(state.config)))
    except VRFCoordinatorError as exc:
        raise StateError("Randomness request failed.", details={"reason": str(exc)}) from exc

    if request_id in state.pending_draws:
        raise StateError("Coordinator returned a duplicate request id.")

    logger.info(
        "Randomness requested",
        extra={"request_id": request_id, "round_id": state.current_round},
    )
    pending = {request_id: state.current_round}
    return request_id, replace(state, pending_draws=pending)


def consume_fulfillment(
    state: CarnivalState,
    request_id: int,
    random_words: Sequence[int],
) -> Tuple[int, int, CarnivalState]:
    """
    Снимает корреляцию и возвращает (round_id, слово, новое состояние).
    """
    round_id = state.pending_draws.get(request_id)
    if round_id is None:
        raise StateError(
            "Unknown or already fulfilled randomness request.",
            details={"request_id": request_id},
        )

    words = list(random_words)
    if len(words) != NUM_WORDS:
        raise ValidationError(
            "Exactly one random word is expected.",
            details={"received": len(words)},
        )
    word = words[0]
    if isinstance(word, bool) or not isinstance(word, int) or word < 0 or word > UINT256_MAX:
        raise ValidationError("Random word must fit uint256.")

    pending = {rid: rnd for rid, rnd in state.pending_draws.items() if rid != request_id}
    return round_id, word, replace(state, pending_draws=pending)


__all__ = [
    "NUM_WORDS",
    "build_request",
    "request_randomness",
    "consume_fulfillment",
]
