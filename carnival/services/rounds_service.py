# -*- coding: utf-8 -*-
# carnival/services/rounds_service.py
# =============================================================================
# Назначение кода:
#   Жизненный цикл раунда Alphabet Carnival:
#   • покупка билета и автоматический запуск розыгрыша по порогу;
#   • приём случайности и закрытие раунда;
#   • админ-настройки и ручное управление зависшим розыгрышем.
#
# Канон/инварианты:
#   • Оплата билета равна цене билета ровно, без сдачи.
#   • Пока ожидается случайность, билеты не продаются и второй запрос
#     не выдаётся.
#   • Розыгрыш запускается, как только tickets_sold >= threshold.
#   • Исполненный розыгрыш фиксирует 8 букв, итоги раунда, увеличивает номер
#     раунда на 1 и обнуляет живые счётчики.
#   • clear_pending_draw не двигает раунд: билеты и пул остаются.
#
# ИИ-защита:
#   • Каждая функция чистая: (state, ...) → Transition. Внешние эффекты
#     (запрос координатору) выполняются до возврата, новое состояние
#     подменяет старое только в движке и только при успехе.
#
# Запреты:
#   • Буквы билета не проверяются на диапазон и уникальность: принимается
#     любая тройка целых.
# =============================================================================

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Optional, Sequence, Tuple

from carnival.core.config_core import normalize_address
from carnival.core.errors_core import StateError, ValidationError
from carnival.core.logging_core import get_logger
from carnival.core.security_core import require_admin, require_coordinator
from carnival.integrations.vrf_coordinator import VRFCoordinator
from carnival.models.events_models import (
    DrawTriggered,
    OperationalReceiversUpdated,
    PendingDrawCleared,
    SubscriptionIdUpdated,
    TicketBought,
    TicketPriceUpdated,
    TicketsThresholdUpdated,
    WinningLettersDrawn,
)
from carnival.models.state_models import CarnivalState, Transition
from carnival.services.letters_service import expand_winning_letters
from carnival.services.randomness_service import consume_fulfillment, request_randomness

logger = get_logger(__name__)

PaymentHook = Callable[[str, int], None]

TICKET_LETTERS = 3


def _normalize_identity(value: str, label: str) -> str:
    try:
        return normalize_address(value)
    except ValueError:
        raise ValidationError(f"Invalid {label} address.", details={label: str(value)})


def _ticket_letters(letters: Sequence[int]) -> Tuple[int, ...]:
    try:
        items = tuple(letters)
    except TypeError:
        raise ValidationError(
            "A ticket must carry exactly 3 letters.",
            details={"received": type(letters).__name__},
        )
    if len(items) != TICKET_LETTERS:
        raise ValidationError(
            "A ticket must carry exactly 3 letters.",
            details={"received": len(items)},
        )
    for item in items:
        if isinstance(item, bool) or not isinstance(item, int):
            raise ValidationError("Ticket letters must be integers.")
    return items


def _positive(value: int, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{label} must be greater than zero.", details={label: value})
    return value


# -----------------------------------------------------------------------------
# Покупка и розыгрыш
# -----------------------------------------------------------------------------
def buy_ticket(
    state: CarnivalState,
    coordinator: VRFCoordinator,
    player: str,
    letters: Sequence[int],
    payment: int,
    on_paid: Optional[PaymentHook] = None,
) -> Transition:
    """
    Продаёт один билет; на пороге тут же выдаёт запрос случайности.

    on_paid(player, payment) вызывается после всех проверок и до обращения
    к координатору: отказ казны не оставляет открытого запроса.
    """
    player = _normalize_identity(player, "player")
    ticket = _ticket_letters(letters)

    if payment != state.config.ticket_price:
        raise ValidationError(
            "Incorrect ticket price.",
            details={"expected": str(state.config.ticket_price), "received": str(payment)},
        )
    if state.is_request_pending:
        raise StateError("Draw in progress, ticket sales are paused.")
    if on_paid is not None:
        on_paid(player, payment)

    sold = replace(
        state,
        tickets_sold=state.tickets_sold + 1,
        prize_pool=state.prize_pool + payment,
    )
    transition = Transition(
        state=sold,
        events=(TicketBought(round_id=state.current_round, player=player, letters=ticket),),
    )
    logger.info(
        "Ticket bought",
        extra={"round_id": state.current_round, "tickets_sold": sold.tickets_sold},
    )

    if sold.tickets_sold >= sold.config.tickets_threshold:
        transition = transition.then(trigger_draw(sold, coordinator))
    return transition


def trigger_draw(state: CarnivalState, coordinator: VRFCoordinator) -> Transition:
    request_id, new_state = request_randomness(state, coordinator)
    logger.info(
        "Draw triggered",
        extra={
            "round_id": state.current_round,
            "tickets_sold": state.tickets_sold,
            "request_id": request_id,
        },
    )
    return Transition(
        state=new_state,
        events=(
            DrawTriggered(
                round_id=state.current_round,
                tickets_sold=state.tickets_sold,
                request_id=request_id,
            ),
        ),
    )


def on_randomness_fulfilled(
    state: CarnivalState,
    coordinator: VRFCoordinator,
    caller: str,
    request_id: int,
    random_words: Sequence[int],
) -> Transition:
    """Принимает ответ координатора и закрывает раунд."""
    require_coordinator(coordinator.address, caller)
    round_id, word, state = consume_fulfillment(state, request_id, random_words)
    letters = expand_winning_letters(word)

    record = replace(
        state.round(round_id),
        winning_letters=letters,
        tickets_sold=state.tickets_sold,
        prize_pool=state.prize_pool,
        draw_request_id=request_id,
    )
    closed = replace(
        state.with_round(record),
        current_round=round_id + 1,
        tickets_sold=0,
        prize_pool=0,
    )
    logger.info(
        "Winning letters drawn",
        extra={"round_id": round_id, "request_id": request_id, "letters": list(letters)},
    )
    return Transition(
        state=closed,
        events=(WinningLettersDrawn(round_id=round_id, letters=letters, request_id=request_id),),
    )


# -----------------------------------------------------------------------------
# Ручное управление зависшим розыгрышем
# -----------------------------------------------------------------------------
def clear_pending_draw(state: CarnivalState, caller: str) -> Transition:
    """Снимает ожидающий запрос; поздний ответ на него будет отклонён."""
    require_admin(state.config, caller)
    if not state.is_request_pending:
        raise StateError("No randomness request is pending.")

    (request_id, round_id), = state.pending_draws.items()
    logger.warning(
        "Pending draw cleared by admin",
        extra={"round_id": round_id, "request_id": request_id},
    )
    return Transition(
        state=replace(state, pending_draws={}),
        events=(PendingDrawCleared(round_id=round_id, request_id=request_id),),
    )


def force_draw(state: CarnivalState, coordinator: VRFCoordinator, caller: str) -> Transition:
    """Выдаёт запрос для открытого раунда, не дожидаясь порога."""
    require_admin(state.config, caller)
    if state.is_request_pending:
        raise StateError("Randomness request already pending.")
    if state.tickets_sold == 0:
        raise StateError("No tickets sold in the current round.")
    return trigger_draw(state, coordinator)


# -----------------------------------------------------------------------------
# Админ-настройки
# -----------------------------------------------------------------------------
def set_ticket_price(state: CarnivalState, caller: str, new_price: int) -> Transition:
    require_admin(state.config, caller)
    _positive(new_price, "ticket_price")
    old_price = state.config.ticket_price
    config = replace(state.config, ticket_price=new_price)
    return Transition(
        state=replace(state, config=config),
        events=(TicketPriceUpdated(old_price=old_price, new_price=new_price),),
    )


def set_tickets_threshold(state: CarnivalState, caller: str, new_threshold: int) -> Transition:
    require_admin(state.config, caller)
    _positive(new_threshold, "tickets_threshold")
    old_threshold = state.config.tickets_threshold
    config = replace(state.config, tickets_threshold=new_threshold)
    return Transition(
        state=replace(state, config=config),
        events=(TicketsThresholdUpdated(old_threshold=old_threshold, new_threshold=new_threshold),),
    )


def set_operational_receivers(
    state: CarnivalState,
    caller: str,
    receiver_1: str,
    receiver_2: str,
    share_1_percent: int,
) -> Transition:
    require_admin(state.config, caller)
    receiver_1 = _normalize_identity(receiver_1, "receiver_1")
    receiver_2 = _normalize_identity(receiver_2, "receiver_2")
    if isinstance(share_1_percent, bool) or not isinstance(share_1_percent, int):
        raise ValidationError("share_1_percent must be an integer.")
    if share_1_percent < 0 or share_1_percent > 100:
        raise ValidationError(
            "Share percentage must be within 0..100.",
            details={"share_1_percent": share_1_percent},
        )

    config = replace(
        state.config,
        fee_receiver_1=receiver_1,
        fee_receiver_2=receiver_2,
        fee_share_1_percent=share_1_percent,
    )
    return Transition(
        state=replace(state, config=config),
        events=(
            OperationalReceiversUpdated(
                receiver_1=receiver_1,
                receiver_2=receiver_2,
                share_1_percent=share_1_percent,
            ),
        ),
    )


def set_subscription_id(state: CarnivalState, caller: str, new_subscription_id: int) -> Transition:
    require_admin(state.config, caller)
    _positive(new_subscription_id, "subscription_id")
    old_subscription_id = state.config.subscription_id
    config = replace(state.config, subscription_id=new_subscription_id)
    return Transition(
        state=replace(state, config=config),
        events=(
            SubscriptionIdUpdated(
                old_subscription_id=old_subscription_id,
                new_subscription_id=new_subscription_id,
            ),
        ),
    )


__all__ = [
    "buy_ticket",
    "trigger_draw",
    "on_randomness_fulfilled",
    "clear_pending_draw",
    "force_draw",
    "set_ticket_price",
    "set_tickets_threshold",
    "set_operational_receivers",
    "set_subscription_id",
]

# =============================================================================
# Пояснения «для чайника»:
#   • buy_ticket сначала проверяет билет и оплату, затем зачисляет платёж
#     (on_paid) и только потом, на пороге, обращается к координатору.
#   • Если координатор так и не ответил, админ вызывает clear_pending_draw(),
#     после чего следующая покупка или force_draw() выдаёт новый запрос.
# =============================================================================
