# -*- coding: utf-8 -*-
# carnival/services/engine_service.py
# =============================================================================
# Назначение кода:
#   CarnivalEngine: единая точка входа Alphabet Carnival. Держит ОДНО
#   состояние, подключает координатор случайности и казну, исполняет каждую
#   операцию атомарно и ведёт упорядоченный журнал событий.
#
# Канон/инварианты:
#   • Операция = чистый переход (state, ...) → Transition. Новое состояние
#     и события применяются только при успешном возврате; любая ошибка
#     оставляет состояние и журнал нетронутыми.
#   • Одновременно исполняется не больше одной операции (OperationGuard);
#     повторный вход (например, из кода получателя перевода) → LockViolation.
#   • Каждая операция логируется в контексте (op, caller).
#
# Запреты:
#   • Бизнес-правила живут в rounds/claims/fees-сервисах, не здесь.
# =============================================================================

from __future__ import annotations

from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from carnival.core.config_core import Settings, get_settings
from carnival.core.errors_core import normalize_exception
from carnival.core.logging_core import get_logger, operation_context
from carnival.core.system_locks import OperationGuard
from carnival.integrations.treasury import InMemoryTreasury, Treasury
from carnival.integrations.vrf_coordinator import InMemoryVRFCoordinator, VRFCoordinator
from carnival.models.events_models import CarnivalEvent
from carnival.models.state_models import CarnivalState, PrizeClaim, Transition
from carnival.schemas.carnival_schemas import ClaimRequestIn, CommitmentIn, RoundOut
from carnival.services import claims_service, rounds_service
from carnival.services.merkle_service import hash_claim_leaf

logger = get_logger(__name__)

Step = Callable[[CarnivalState], Transition]


class CarnivalEngine:
    """
    Фасад движка.

    Пример:
        engine = CarnivalEngine.from_settings()
        engine.buy_ticket([1, 2, 3], engine.ticket_price, caller=player)
    """

    def __init__(
        self,
        state: CarnivalState,
        coordinator: VRFCoordinator,
        treasury: Treasury,
        *,
        events: Iterable[CarnivalEvent] = (),
    ) -> None:
        self._state = state
        self._coordinator = coordinator
        self._treasury = treasury
        self._guard = OperationGuard()
        self._events: List[CarnivalEvent] = list(events)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        *,
        coordinator: Optional[VRFCoordinator] = None,
        treasury: Optional[Treasury] = None,
    ) -> "CarnivalEngine":
        settings = settings or get_settings()
        state = CarnivalState(config=settings.build_carnival_config())
        logger.info("Carnival engine created", extra={"details": settings.debug_dump()})
        return cls(
            state,
            coordinator or InMemoryVRFCoordinator(),
            treasury or InMemoryTreasury(),
        )

    # -------------------------------------------------------------------------
    # Исполнение
    # -------------------------------------------------------------------------
    def _execute(self, op: str, caller: Optional[str], step: Step) -> Transition:
        with operation_context(op, caller):
            try:
                with self._guard.enter(op):
                    transition = step(self._state)
                    self._state = transition.state
                    self._events.extend(transition.events)
            except Exception as exc:
                code, payload = normalize_exception(exc)
                logger.warning(
                    "Operation failed",
                    extra={"error": code, "reason": payload.get("message")},
                )
                raise
            logger.debug(
                "Operation applied",
                extra={"events": [event.name for event in transition.events]},
            )
        return transition

    @property
    def state(self) -> CarnivalState:
        return self._state

    @property
    def coordinator(self) -> VRFCoordinator:
        return self._coordinator

    @property
    def treasury(self) -> Treasury:
        return self._treasury

    @property
    def operation_in_progress(self) -> bool:
        return self._guard.in_progress

    # -------------------------------------------------------------------------
    # Операции игроков и оракула
    # -------------------------------------------------------------------------
    def buy_ticket(self, letters: Sequence[int], payment: int, *, caller: str) -> Transition:
        return self._execute(
            "buy_ticket",
            caller,
            lambda state: rounds_service.buy_ticket(
                state, self._coordinator, caller, letters, payment, on_paid=self._treasury.credit
            ),
        )

    def on_randomness_fulfilled(
        self,
        request_id: int,
        random_words: Sequence[int],
        *,
        caller: str,
    ) -> Transition:
        return self._execute(
            "on_randomness_fulfilled",
            caller,
            lambda state: rounds_service.on_randomness_fulfilled(
                state, self._coordinator, caller, request_id, random_words
            ),
        )

    def submit_commitment(
        self,
        round_id: int,
        root: bytes,
        settlement_amount: int,
        *,
        caller: str,
    ) -> Transition:
        return self._execute(
            "submit_commitment",
            caller,
            lambda state: claims_service.submit_commitment(
                state, self._treasury, caller, round_id, root, settlement_amount
            ),
        )

    def submit_commitment_request(self, request: CommitmentIn, *, caller: str) -> Transition:
        return self.submit_commitment(
            request.round,
            request.root_bytes(),
            request.settlement_amount,
            caller=caller,
        )

    def claim_prize(
        self,
        claim: PrizeClaim,
        proof: Sequence[claims_service.ProofNode],
        *,
        caller: str,
    ) -> Transition:
        return self._execute(
            "claim_prize",
            caller,
            lambda state: claims_service.claim_prize(state, self._treasury, caller, claim, proof),
        )

    def claim_prize_request(self, request: ClaimRequestIn, *, caller: str) -> Transition:
        claim, proof = request.to_domain()
        return self.claim_prize(claim, proof, caller=caller)

    # -------------------------------------------------------------------------
    # Админ-операции
    # -------------------------------------------------------------------------
    def set_ticket_price(self, new_price: int, *, caller: str) -> Transition:
        return self._execute(
            "set_ticket_price",
            caller,
            lambda state: rounds_service.set_ticket_price(state, caller, new_price),
        )

    def set_tickets_threshold(self, new_threshold: int, *, caller: str) -> Transition:
        return self._execute(
            "set_tickets_threshold",
            caller,
            lambda state: rounds_service.set_tickets_threshold(state, caller, new_threshold),
        )

    def set_operational_receivers(
        self,
        receiver_1: str,
        receiver_2: str,
        share_1_percent: int,
        *,
        caller: str,
    ) -> Transition:
        return self._execute(
            "set_operational_receivers",
            caller,
            lambda state: rounds_service.set_operational_receivers(
                state, caller, receiver_1, receiver_2, share_1_percent
            ),
        )

    def set_subscription_id(self, new_subscription_id: int, *, caller: str) -> Transition:
        return self._execute(
            "set_subscription_id",
            caller,
            lambda state: rounds_service.set_subscription_id(state, caller, new_subscription_id),
        )

    def clear_pending_draw(self, *, caller: str) -> Transition:
        return self._execute(
            "clear_pending_draw",
            caller,
            lambda state: rounds_service.clear_pending_draw(state, caller),
        )

    def force_draw(self, *, caller: str) -> Transition:
        return self._execute(
            "force_draw",
            caller,
            lambda state: rounds_service.force_draw(state, self._coordinator, caller),
        )

    # -------------------------------------------------------------------------
    # Чтение
    # -------------------------------------------------------------------------
    @property
    def current_round(self) -> int:
        return self._state.current_round

    @property
    def tickets_sold(self) -> int:
        return self._state.tickets_sold

    @property
    def prize_pool(self) -> int:
        return self._state.prize_pool

    @property
    def ticket_price(self) -> int:
        return self._state.config.ticket_price

    @property
    def tickets_threshold(self) -> int:
        return self._state.config.tickets_threshold

    @property
    def total_fees(self) -> int:
        return self._state.fees.total_fees

    @property
    def is_request_pending(self) -> bool:
        return self._state.is_request_pending

    @property
    def pending_request_id(self) -> Optional[int]:
        for request_id in self._state.pending_draws:
            return request_id
        return None

    @property
    def events(self) -> Tuple[CarnivalEvent, ...]:
        return tuple(self._events)

    def events_named(self, name: str) -> List[CarnivalEvent]:
        return [event for event in self._events if event.name == name]

    def merkle_root(self, round_id: int) -> Optional[bytes]:
        return self._state.round(round_id).merkle_root

    def winning_letters(self, round_id: int) -> Tuple[int, ...]:
        return self._state.round(round_id).winning_letters

    def is_claimed(self, digest: bytes) -> bool:
        return self._state.is_claimed(digest)

    def is_prize_claimed(self, claim: PrizeClaim) -> bool:
        return self._state.is_claimed(hash_claim_leaf(claim))

    def describe_round(self, round_id: Optional[int] = None) -> RoundOut:
        state = self._state
        round_id = state.current_round if round_id is None else round_id
        record = state.round(round_id)
        if round_id == state.current_round:
            return RoundOut.from_record(
                record,
                is_open=True,
                tickets_sold=state.tickets_sold,
                prize_pool=state.prize_pool,
            )
        return RoundOut.from_record(
            record,
            is_open=False,
            tickets_sold=record.tickets_sold,
            prize_pool=record.prize_pool,
        )


__all__ = ["CarnivalEngine"]

# =============================================================================
# Пояснения «для чайника»:
#   • Снаружи работайте только через CarnivalEngine: он держит единственное
#     состояние и журнал событий.
#   • Каждая операция либо применяется целиком (новое состояние и события),
#     либо не оставляет следа: исключение пробрасывается вызывающему.
#   • Для JSON-входа есть *_request-варианты, принимающие pydantic-схемы.
# =============================================================================
