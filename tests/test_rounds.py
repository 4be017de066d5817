import pytest

from carnival.core.errors_core import (
    AuthorizationError,
    StateError,
    TransferError,
    ValidationError,
)
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
from carnival.services.letters_service import expand_winning_letters

from tests.conftest import (
    ADMIN,
    ALICE,
    BOB,
    RECEIVER_1,
    RECEIVER_2,
    STRANGER,
    THRESHOLD,
    TICKET_PRICE,
)


# -----------------------------------------------------------------------------
# Покупка билетов
# -----------------------------------------------------------------------------
def test_buy_ticket_updates_counters_and_emits(engine, treasury):
    engine.buy_ticket([5, 6, 7], TICKET_PRICE, caller=ALICE)

    assert engine.tickets_sold == 1
    assert engine.prize_pool == TICKET_PRICE
    assert treasury.balance == TICKET_PRICE
    assert engine.events == (TicketBought(round_id=1, player=ALICE, letters=(5, 6, 7)),)


@pytest.mark.parametrize("payment", [0, TICKET_PRICE - 1, TICKET_PRICE + 1])
def test_wrong_payment_is_rejected_without_side_effects(engine, treasury, payment):
    with pytest.raises(ValidationError, match="Incorrect ticket price."):
        engine.buy_ticket([1, 2, 3], payment, caller=ALICE)
    assert engine.tickets_sold == 0
    assert engine.prize_pool == 0
    assert engine.events == ()
    assert treasury.balance == 0


def test_letters_are_accepted_without_range_checks(engine):
    engine.buy_ticket([0, 200, 200], TICKET_PRICE, caller=ALICE)
    assert engine.events[-1].letters == (0, 200, 200)


@pytest.mark.parametrize("letters", [[1, 2], [1, 2, 3, 4], [1, "b", 3], None, 7])
def test_ticket_shape_is_enforced(engine, letters):
    with pytest.raises(ValidationError):
        engine.buy_ticket(letters, TICKET_PRICE, caller=ALICE)


def test_invalid_player_address_is_rejected(engine):
    with pytest.raises(ValidationError):
        engine.buy_ticket([1, 2, 3], TICKET_PRICE, caller="not-an-address")


def test_threshold_triggers_exactly_one_draw(engine, coordinator, sell_tickets):
    sell_tickets(engine, THRESHOLD - 1)
    assert not engine.is_request_pending
    assert engine.events_named("DrawTriggered") == []

    sell_tickets(engine, 1)
    assert engine.is_request_pending
    assert engine.events[-1] == DrawTriggered(round_id=1, tickets_sold=THRESHOLD, request_id=1)
    assert engine.events[-2].name == "TicketBought"
    assert coordinator.open_requests() == [1]


def test_refused_credit_sends_no_draw_request(engine, coordinator, treasury, sell_tickets, monkeypatch):
    sell_tickets(engine, THRESHOLD - 1)

    def refuse(payer, amount):
        raise TransferError("Treasury refused the payment.")

    monkeypatch.setattr(treasury, "credit", refuse)
    with pytest.raises(TransferError):
        engine.buy_ticket([1, 2, 3], TICKET_PRICE, caller=ALICE)

    assert coordinator.open_requests() == []
    assert coordinator.last_request_id is None
    assert not engine.is_request_pending
    assert engine.tickets_sold == THRESHOLD - 1


def test_purchases_refused_while_draw_pending(engine, sell_tickets, treasury):
    sell_tickets(engine, THRESHOLD)
    events_before = engine.events
    with pytest.raises(StateError):
        engine.buy_ticket([1, 2, 3], TICKET_PRICE, caller=ALICE)
    assert engine.tickets_sold == THRESHOLD
    assert engine.events == events_before
    assert treasury.balance == THRESHOLD * TICKET_PRICE


# -----------------------------------------------------------------------------
# Приём случайности
# -----------------------------------------------------------------------------
def test_fulfillment_closes_round(engine, sell_tickets, fulfill_draw):
    sell_tickets(engine, THRESHOLD)
    fulfill_draw(engine, [81])

    assert engine.current_round == 2
    assert engine.tickets_sold == 0
    assert engine.prize_pool == 0
    assert not engine.is_request_pending
    assert engine.winning_letters(1) == (4, 5, 1, 2, 3, 6, 7, 8)
    assert engine.events[-1] == WinningLettersDrawn(
        round_id=1, letters=(4, 5, 1, 2, 3, 6, 7, 8), request_id=1
    )

    closed = engine.describe_round(1)
    assert closed.is_open is False
    assert closed.tickets_sold == THRESHOLD
    assert closed.prize_pool_wei == str(THRESHOLD * TICKET_PRICE)
    assert closed.draw_request_id == "1"


def test_default_mock_word_drives_letters(engine, sell_tickets, fulfill_draw):
    sell_tickets(engine, THRESHOLD)
    (word,) = fulfill_draw(engine)
    assert engine.winning_letters(1) == expand_winning_letters(word)


def test_only_coordinator_may_fulfill(engine, sell_tickets):
    sell_tickets(engine, THRESHOLD)
    with pytest.raises(AuthorizationError):
        engine.on_randomness_fulfilled(1, [81], caller=STRANGER)
    assert engine.is_request_pending
    assert engine.current_round == 1


def test_unknown_or_repeated_fulfillment_is_rejected(engine, coordinator, sell_tickets, fulfill_draw):
    sell_tickets(engine, THRESHOLD)
    with pytest.raises(StateError):
        engine.on_randomness_fulfilled(2, [81], caller=coordinator.address)

    fulfill_draw(engine, [81])
    events_before = engine.events
    with pytest.raises(StateError):
        engine.on_randomness_fulfilled(1, [81], caller=coordinator.address)
    assert engine.events == events_before
    assert engine.current_round == 2


def test_multi_word_fulfillment_keeps_request_pending(engine, coordinator, sell_tickets):
    sell_tickets(engine, THRESHOLD)
    with pytest.raises(ValidationError):
        engine.on_randomness_fulfilled(1, [1, 2], caller=coordinator.address)
    assert engine.is_request_pending
    assert engine.current_round == 1


def test_rounds_advance_one_at_a_time(engine, sell_tickets, fulfill_draw):
    for expected_round in (1, 2, 3):
        assert engine.current_round == expected_round
        sell_tickets(engine, THRESHOLD)
        fulfill_draw(engine, [expected_round])
    assert engine.current_round == 4
    assert [e.request_id for e in engine.events_named("DrawTriggered")] == [1, 2, 3]


# -----------------------------------------------------------------------------
# Зависший розыгрыш
# -----------------------------------------------------------------------------
def test_clear_pending_draw_keeps_round_open(engine, coordinator, sell_tickets):
    sell_tickets(engine, THRESHOLD)
    engine.clear_pending_draw(caller=ADMIN)

    assert not engine.is_request_pending
    assert engine.current_round == 1
    assert engine.tickets_sold == THRESHOLD
    assert engine.events[-1] == PendingDrawCleared(round_id=1, request_id=1)

    with pytest.raises(StateError):
        coordinator.fulfill_random_words(1, engine.on_randomness_fulfilled, [81])
    assert engine.current_round == 1


def test_clear_pending_draw_requires_admin_and_pending(engine, sell_tickets):
    with pytest.raises(StateError):
        engine.clear_pending_draw(caller=ADMIN)
    sell_tickets(engine, THRESHOLD)
    with pytest.raises(AuthorizationError):
        engine.clear_pending_draw(caller=ALICE)


def test_next_purchase_after_clear_reissues_draw(engine, sell_tickets, fulfill_draw):
    sell_tickets(engine, THRESHOLD)
    engine.clear_pending_draw(caller=ADMIN)
    sell_tickets(engine, 1)

    assert engine.pending_request_id == 2
    fulfill_draw(engine, [0])
    assert engine.current_round == 2
    assert engine.describe_round(1).tickets_sold == THRESHOLD + 1


def test_force_draw(engine, sell_tickets, fulfill_draw):
    with pytest.raises(StateError):
        engine.force_draw(caller=ADMIN)

    sell_tickets(engine, 1)
    with pytest.raises(AuthorizationError):
        engine.force_draw(caller=BOB)

    engine.force_draw(caller=ADMIN)
    assert engine.events[-1] == DrawTriggered(round_id=1, tickets_sold=1, request_id=1)
    with pytest.raises(StateError):
        engine.force_draw(caller=ADMIN)

    fulfill_draw(engine, [5])
    assert engine.current_round == 2


# -----------------------------------------------------------------------------
# Админ-настройки
# -----------------------------------------------------------------------------
@pytest.mark.parametrize(
    "call",
    [
        lambda e, who: e.set_ticket_price(5, caller=who),
        lambda e, who: e.set_tickets_threshold(5, caller=who),
        lambda e, who: e.set_operational_receivers(RECEIVER_1, RECEIVER_2, 10, caller=who),
        lambda e, who: e.set_subscription_id(5, caller=who),
    ],
)
def test_admin_setters_require_admin(engine, call):
    with pytest.raises(AuthorizationError):
        call(engine, STRANGER)
    assert engine.events == ()


def test_set_ticket_price(engine):
    engine.set_ticket_price(2_000, caller=ADMIN)
    assert engine.ticket_price == 2_000
    assert engine.events[-1] == TicketPriceUpdated(old_price=TICKET_PRICE, new_price=2_000)
    with pytest.raises(ValidationError):
        engine.set_ticket_price(0, caller=ADMIN)
    with pytest.raises(ValidationError, match="Incorrect ticket price."):
        engine.buy_ticket([1, 2, 3], TICKET_PRICE, caller=ALICE)


def test_lowering_threshold_triggers_on_next_purchase(engine, sell_tickets):
    sell_tickets(engine, 2)
    engine.set_tickets_threshold(1, caller=ADMIN)
    assert engine.events[-1] == TicketsThresholdUpdated(old_threshold=THRESHOLD, new_threshold=1)
    assert not engine.is_request_pending

    sell_tickets(engine, 1)
    assert engine.events[-1] == DrawTriggered(round_id=1, tickets_sold=3, request_id=1)
    with pytest.raises(ValidationError):
        engine.set_tickets_threshold(0, caller=ADMIN)


def test_set_operational_receivers(engine):
    engine.set_operational_receivers(BOB.lower(), ALICE, 70, caller=ADMIN)
    assert engine.state.config.fee_receiver_1 == BOB
    assert engine.state.config.fee_share_1_percent == 70
    assert engine.events[-1] == OperationalReceiversUpdated(
        receiver_1=BOB, receiver_2=ALICE, share_1_percent=70
    )

    with pytest.raises(ValidationError):
        engine.set_operational_receivers(RECEIVER_1, RECEIVER_2, 101, caller=ADMIN)
    with pytest.raises(ValidationError):
        engine.set_operational_receivers("0x123", RECEIVER_2, 50, caller=ADMIN)
    assert engine.state.config.fee_receiver_1 == BOB


def test_set_subscription_id_applies_to_next_request(engine, coordinator, sell_tickets):
    engine.set_subscription_id(77, caller=ADMIN)
    assert engine.events[-1] == SubscriptionIdUpdated(old_subscription_id=1, new_subscription_id=77)
    with pytest.raises(ValidationError):
        engine.set_subscription_id(0, caller=ADMIN)

    sell_tickets(engine, THRESHOLD)
    assert coordinator.requests[1].subscription_id == 77
