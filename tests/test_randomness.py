import pytest
from eth_abi import encode
from eth_utils import keccak

from carnival.core.errors_core import StateError, ValidationError
from carnival.integrations.vrf_coordinator import (
    InMemoryVRFCoordinator,
    RandomWordsRequest,
    VRFCoordinatorError,
    mock_random_word,
)
from carnival.models.state_models import CarnivalState
from carnival.services.randomness_service import (
    build_request,
    consume_fulfillment,
    request_randomness,
)

from tests.conftest import KEY_HASH


def test_request_shape_follows_config(config):
    request = build_request(config)
    assert request == RandomWordsRequest(
        key_hash=KEY_HASH,
        subscription_id=1,
        request_confirmations=3,
        callback_gas_limit=500_000,
        num_words=1,
        native_payment=False,
    )


def test_request_records_correlation(config, coordinator):
    state = CarnivalState(config=config)
    request_id, new_state = request_randomness(state, coordinator)
    assert request_id == 1
    assert dict(new_state.pending_draws) == {1: 1}
    assert new_state.is_request_pending
    assert not state.is_request_pending


def test_second_request_is_refused_while_pending(config, coordinator):
    _, state = request_randomness(CarnivalState(config=config), coordinator)
    with pytest.raises(StateError):
        request_randomness(state, coordinator)
    assert coordinator.open_requests() == [1]


def test_coordinator_refusal_becomes_state_error(config):
    coordinator = InMemoryVRFCoordinator(subscription_ids={99})
    with pytest.raises(StateError, match="Randomness request failed"):
        request_randomness(CarnivalState(config=config), coordinator)


def test_fulfillment_consumes_correlation(config, coordinator):
    _, state = request_randomness(CarnivalState(config=config), coordinator)
    round_id, word, state = consume_fulfillment(state, 1, [42])
    assert (round_id, word) == (1, 42)
    assert not state.is_request_pending
    with pytest.raises(StateError):
        consume_fulfillment(state, 1, [42])


def test_fulfillment_for_unknown_id_is_rejected(config, coordinator):
    _, state = request_randomness(CarnivalState(config=config), coordinator)
    with pytest.raises(StateError):
        consume_fulfillment(state, 7, [42])


@pytest.mark.parametrize("words", [[], [1, 2], [-1], [2**256]])
def test_fulfillment_requires_exactly_one_uint256_word(config, coordinator, words):
    _, state = request_randomness(CarnivalState(config=config), coordinator)
    with pytest.raises(ValidationError):
        consume_fulfillment(state, 1, words)


def test_mock_word_is_keccak_of_request_and_index():
    expected = int.from_bytes(keccak(encode(["uint256", "uint256"], [3, 0])), "big")
    assert mock_random_word(3, 0) == expected


def test_in_memory_coordinator_delivers_once(config):
    coordinator = InMemoryVRFCoordinator()
    first = coordinator.request_random_words(build_request(config))
    second = coordinator.request_random_words(build_request(config))
    assert (first, second) == (1, 2)

    received = []
    words = coordinator.fulfill_random_words(
        first, lambda rid, w, caller: received.append((rid, w, caller))
    )
    assert words == [mock_random_word(1, 0)]
    assert received == [(1, words, coordinator.address)]
    assert coordinator.open_requests() == [2]

    with pytest.raises(VRFCoordinatorError):
        coordinator.fulfill_random_words(first, lambda *a, **k: None)
    with pytest.raises(VRFCoordinatorError):
        coordinator.fulfill_random_words(9, lambda *a, **k: None)


def test_in_memory_coordinator_refuses_multi_word_requests(config):
    coordinator = InMemoryVRFCoordinator()
    request = RandomWordsRequest(
        key_hash=config.key_hash,
        subscription_id=1,
        request_confirmations=3,
        callback_gas_limit=500_000,
        num_words=2,
    )
    with pytest.raises(VRFCoordinatorError):
        coordinator.request_random_words(request)
