# -*- coding: utf-8 -*-
# carnival/services/storage_service.py
# =============================================================================
# Назначение кода:
#   Сохранение и восстановление движка Alphabet Carnival через SQLAlchemy:
#   снимок состояния + дописывание журнала событий.
#
# Канон/инварианты:
#   • Снимок пишется целиком из текущего состояния движка; журнал событий
#     дописывается только хвостом (события с позиции, ещё не записанной в БД).
#   • Восстановленный движок получает то же состояние и тот же журнал.
#
# Запреты:
#   • Сервис не коммитит сам: commit делает вызывающий (lifespan_session).
# =============================================================================

from __future__ import annotations

from typing import Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from carnival.core.errors_core import StateError
from carnival.core.logging_core import get_logger
from carnival.crud.state_crud import CarnivalStateCRUD
from carnival.integrations.treasury import Treasury
from carnival.integrations.vrf_coordinator import VRFCoordinator
from carnival.models.state_models import CarnivalConfig, CarnivalState
from carnival.services.engine_service import CarnivalEngine

logger = get_logger(__name__)


async def svc_persist_engine(db: AsyncSession, engine: CarnivalEngine) -> Dict[str, int]:
    """Записать снимок и новые события. Возвращает краткую сводку."""
    crud = CarnivalStateCRUD(db)
    await crud.save_state(engine.state)

    stored = await crud.count_events()
    events = engine.events
    if stored > len(events):
        raise StateError(
            "Stored event log is longer than the engine log.",
            details={"stored": stored, "engine": len(events)},
        )
    written = await crud.append_events(events[stored:], start_seq=stored)

    logger.info(
        "Engine persisted",
        extra={"round_id": engine.current_round, "events_written": written},
    )
    return {"round": engine.current_round, "events_written": written, "events_total": len(events)}


async def svc_restore_state(
    db: AsyncSession,
    config: Optional[CarnivalConfig] = None,
) -> Optional[CarnivalState]:
    """
    Состояние из БД. Если снимка нет и передан config, возвращается чистое
    состояние первого раунда; иначе None.
    """
    state = await CarnivalStateCRUD(db).load_state()
    if state is None and config is not None:
        return CarnivalState(config=config)
    return state


async def svc_restore_engine(
    db: AsyncSession,
    *,
    config: CarnivalConfig,
    coordinator: VRFCoordinator,
    treasury: Treasury,
) -> CarnivalEngine:
    """
    Поднять движок из БД вместе с журналом событий.

    config применяется только при пустой БД. Если снимок есть, действует
    сохранённая конфигурация (её меняют только админ-операции); расхождение
    с переданным config пишется в лог предупреждением.
    """
    crud = CarnivalStateCRUD(db)
    state = await crud.load_state()
    if state is None:
        logger.info("No stored snapshot, starting a fresh engine")
        return CarnivalEngine(CarnivalState(config=config), coordinator, treasury)

    if state.config != config:
        logger.warning(
            "Stored config differs from the provided one, keeping the stored config",
            extra={"round_id": state.current_round},
        )

    events = [event for _, event in await crud.list_events()]
    logger.info(
        "Engine restored",
        extra={"round_id": state.current_round, "events_total": len(events)},
    )
    return CarnivalEngine(state, coordinator, treasury, events=events)


__all__ = ["svc_persist_engine", "svc_restore_state", "svc_restore_engine"]

# =============================================================================
# Пояснения «для чайника»:
#   • После серии операций вызывайте svc_persist_engine(db, engine) и
#     db.commit(). В журнал дописываются только новые события.
#   • При восстановлении действует сохранённая конфигурация; переданный
#     config нужен только для пустой БД.
# =============================================================================
