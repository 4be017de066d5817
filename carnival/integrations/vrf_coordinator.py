# -*- coding: utf-8 -*-
# carnival/integrations/vrf_coordinator.py
# =============================================================================
# Alphabet Carnival: контракт VRF-координатора и его in-memory реализация
# -----------------------------------------------------------------------------
# Назначение:
#   • Описывает исходящий запрос случайности (RandomWordsRequest) и протокол
#     координатора: request_random_words() синхронно возвращает id запроса.
#   • InMemoryVRFCoordinator повторяет поведение mock-координатора VRF v2.5:
#     id запросов нумеруются с 1, слово по умолчанию
#     keccak256(abi.encode(uint256 requestId, uint256 index)).
#
# Канон/инварианты:
#   • Каждый запрос получает не больше одного ответа.
#   • Ответ на неизвестный или уже исполненный id не доставляется.
#   • num_words всегда 1.
#
# Запреты:
#   • Координатор не знает о раундах и буквах: только id и слова.
# =============================================================================
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Set

from eth_abi import encode
from eth_utils import keccak, to_checksum_address

from carnival.core.logging_core import get_logger

logger = get_logger(__name__)

# Адрес, под которым in-memory координатор вызывает consumer по умолчанию.
DEFAULT_COORDINATOR_ADDRESS = to_checksum_address("0x5fbdb2315678afecb367f032d93f642f64180aa3")

# consumer(request_id, random_words, caller=coordinator_address)
FulfillmentCallback = Callable[..., object]


@dataclass(slots=True, frozen=True)
class RandomWordsRequest:
    """Параметры запроса VRF v2.5."""

    key_hash: str
    subscription_id: int
    request_confirmations: int
    callback_gas_limit: int
    num_words: int = 1
    native_payment: bool = False


class VRFCoordinatorError(RuntimeError):
    """Координатор отклонил запрос или доставку ответа."""


class VRFCoordinator(Protocol):
    address: str

    def request_random_words(self, request: RandomWordsRequest) -> int:
        ...


def mock_random_word(request_id: int, index: int) -> int:
    """Слово случайности так, как его выдаёт mock-координатор VRF v2.5."""
    digest = keccak(encode(["uint256", "uint256"], [request_id, index]))
    return int.from_bytes(digest, "big")


@dataclass
class InMemoryVRFCoordinator:
    """
    Координатор в памяти процесса (для тестов и локального запуска).

    subscription_ids=None отключает проверку подписки; иначе запрос с
    неизвестной подпиской отклоняется, как у настоящего координатора.
    """

    address: str = DEFAULT_COORDINATOR_ADDRESS
    subscription_ids: Optional[Set[int]] = None
    requests: Dict[int, RandomWordsRequest] = field(default_factory=dict)
    fulfilled: Set[int] = field(default_factory=set)
    _next_id: int = 1

    def request_random_words(self, request: RandomWordsRequest) -> int:
        if request.num_words != 1:
            raise VRFCoordinatorError(f"num_words must be 1, got {request.num_words}")
        if self.subscription_ids is not None and request.subscription_id not in self.subscription_ids:
            raise VRFCoordinatorError(f"Invalid subscription {request.subscription_id}")

        request_id = self._next_id
        self._next_id += 1
        self.requests[request_id] = request
        logger.info(
            "Random words requested",
            extra={"request_id": request_id, "subscription_id": request.subscription_id},
        )
        return request_id

    @property
    def last_request_id(self) -> Optional[int]:
        return self._next_id - 1 if self._next_id > 1 else None

    def open_requests(self) -> List[int]:
        return sorted(rid for rid in self.requests if rid not in self.fulfilled)

    def fulfill_random_words(
        self,
        request_id: int,
        consumer: FulfillmentCallback,
        words: Optional[Sequence[int]] = None,
    ) -> List[int]:
        """
        Доставляет ответ consumer-у.

        Запрос помечается исполненным ДО вызова consumer: если consumer упал,
        повторной доставки не будет, а исключение уходит вызывающему.
        """
        if request_id not in self.requests:
            raise VRFCoordinatorError(f"Unknown request {request_id}")
        if request_id in self.fulfilled:
            raise VRFCoordinatorError(f"Request {request_id} already fulfilled")

        request = self.requests[request_id]
        if words is None:
            words = [mock_random_word(request_id, i) for i in range(request.num_words)]
        payload = list(words)

        self.fulfilled.add(request_id)
        logger.info("Fulfilling random words", extra={"request_id": request_id})
        consumer(request_id, payload, caller=self.address)
        return payload


__all__ = [
    "DEFAULT_COORDINATOR_ADDRESS",
    "RandomWordsRequest",
    "VRFCoordinatorError",
    "VRFCoordinator",
    "InMemoryVRFCoordinator",
    "mock_random_word",
]
