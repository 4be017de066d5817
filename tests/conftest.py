# -*- coding: utf-8 -*-
# tests/conftest.py
# Общие фикстуры: адреса участников, конфигурация, движок с in-memory
# координатором и казной, помощники продажи билетов и розыгрыша.

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

import pytest
from eth_utils import to_checksum_address

from carnival.integrations.treasury import InMemoryTreasury
from carnival.integrations.vrf_coordinator import InMemoryVRFCoordinator
from carnival.models.state_models import CarnivalConfig, CarnivalState
from carnival.services.engine_service import CarnivalEngine

ADMIN = to_checksum_address("0x" + "a1" * 20)
AUTHORITY = to_checksum_address("0x" + "a2" * 20)
RECEIVER_1 = to_checksum_address("0x" + "f1" * 20)
RECEIVER_2 = to_checksum_address("0x" + "f2" * 20)
ALICE = to_checksum_address("0x" + "0a" * 20)
BOB = to_checksum_address("0x" + "0b" * 20)
STRANGER = to_checksum_address("0x" + "5e" * 20)

KEY_HASH = "0x6c3699283bda56ad74f6b855546325b68d482e983852a7a82979cc4807b641f4"
TICKET_PRICE = 1_000
THRESHOLD = 3


def make_config(**overrides) -> CarnivalConfig:
    params = dict(
        ticket_price=TICKET_PRICE,
        tickets_threshold=THRESHOLD,
        admin=ADMIN,
        authority=AUTHORITY,
        fee_receiver_1=RECEIVER_1,
        fee_receiver_2=RECEIVER_2,
        fee_share_1_percent=50,
        key_hash=KEY_HASH,
        subscription_id=1,
    )
    params.update(overrides)
    return CarnivalConfig(**params)


@pytest.fixture
def config() -> CarnivalConfig:
    return make_config()


@pytest.fixture
def coordinator() -> InMemoryVRFCoordinator:
    return InMemoryVRFCoordinator()


@pytest.fixture
def treasury() -> InMemoryTreasury:
    return InMemoryTreasury()


@pytest.fixture
def engine(config, coordinator, treasury) -> CarnivalEngine:
    return CarnivalEngine(CarnivalState(config=config), coordinator, treasury)


@pytest.fixture
def sell_tickets() -> Callable[..., None]:
    def _sell(
        engine: CarnivalEngine,
        count: int,
        players: Sequence[str] = (ALICE, BOB),
        letters: Sequence[int] = (1, 2, 3),
    ) -> None:
        for i in range(count):
            engine.buy_ticket(letters, engine.ticket_price, caller=players[i % len(players)])

    return _sell


@pytest.fixture
def fulfill_draw(coordinator) -> Callable[..., List[int]]:
    def _fulfill(engine: CarnivalEngine, words: Optional[Sequence[int]] = None) -> List[int]:
        request_id = engine.pending_request_id
        assert request_id is not None, "no draw is pending"
        return coordinator.fulfill_random_words(request_id, engine.on_randomness_fulfilled, words)

    return _fulfill


@pytest.fixture
def drawn_engine(engine, sell_tickets, fulfill_draw) -> CarnivalEngine:
    """Движок с разыгранным раундом 1 (3 билета, казна 3000 wei)."""
    sell_tickets(engine, THRESHOLD)
    fulfill_draw(engine, [81])
    return engine
