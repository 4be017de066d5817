# ==============================================================================
# Alphabet Carnival: фабрика движка лотереи
# ------------------------------------------------------------------------------
# Назначение: собирает CarnivalEngine из настроек и подключает внешних
# участников (VRF-координатор, казну).
#
# Канон/инварианты:
#   • create_carnival() можно вызывать многократно: каждый вызов даёт новый
#     независимый движок со свежим состоянием первого раунда.
#   • Без явно переданных участников используются in-memory реализации.
#
# Запреты:
#   • Фабрика не обращается к БД и не двигает деньги.
# ==============================================================================
from __future__ import annotations

from typing import Any, Dict, Optional

from carnival.core import CORE_VERSION
from carnival.core.config_core import Settings, get_settings
from carnival.core.logging_core import get_logger
from carnival.integrations.treasury import Treasury
from carnival.integrations.vrf_coordinator import VRFCoordinator
from carnival.services.engine_service import CarnivalEngine

logger = get_logger(__name__)


def create_carnival(
    settings: Optional[Settings] = None,
    *,
    coordinator: Optional[VRFCoordinator] = None,
    treasury: Optional[Treasury] = None,
) -> CarnivalEngine:
    """Создать движок Alphabet Carnival."""

    engine = CarnivalEngine.from_settings(settings, coordinator=coordinator, treasury=treasury)
    logger.info("Alphabet Carnival engine initialised", extra={"core_version": CORE_VERSION})
    return engine


def carnival_health(engine: CarnivalEngine) -> Dict[str, Any]:
    """Краткая сводка состояния движка без побочных эффектов."""

    settings = get_settings()
    return {
        "status": "ok",
        "core_version": CORE_VERSION,
        "env": settings.env_normalized,
        "round": engine.current_round,
        "tickets_sold": engine.tickets_sold,
        "request_pending": engine.is_request_pending,
        "operation_in_progress": engine.operation_in_progress,
    }


__all__ = ["CORE_VERSION", "CarnivalEngine", "create_carnival", "carnival_health"]
