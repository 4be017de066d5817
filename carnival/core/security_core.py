# -*- coding: utf-8 -*-
# carnival/core/security_core.py
# =============================================================================
# Назначение кода:
#   Проверки полномочий Alphabet Carnival: «кто ты» и «можно/нельзя».
#   Вызываются явно в начале каждой привилегированной операции.
#
# Канон / инварианты:
#   • Админ-сеттеры и ручное управление розыгрышем: только admin.
#   • Публикация Merkle-корня: только authority.
#   • Callback случайности: только подключённый координатор.
#   • Получение приза: только сам игрок из листа.
#   • Адреса сравниваются без учёта регистра (checksum-форма не важна).
#
# Запреты:
#   • Никаких правок состояния в этом модуле.
# =============================================================================

from __future__ import annotations

from typing import Optional

from carnival.core.errors_core import AuthorizationError
from carnival.models.state_models import CarnivalConfig


def same_identity(left: Optional[str], right: Optional[str]) -> bool:
    if not left or not right:
        return False
    return left.lower() == right.lower()


def require_admin(config: CarnivalConfig, caller: str) -> None:
    if not same_identity(caller, config.admin):
        raise AuthorizationError(
            "Only the admin can perform this operation.",
            details={"caller": caller},
        )


def require_authority(config: CarnivalConfig, caller: str) -> None:
    if not same_identity(caller, config.authority):
        raise AuthorizationError(
            "Only the authority can submit a commitment.",
            details={"caller": caller},
        )


def require_coordinator(coordinator_address: str, caller: str) -> None:
    if not same_identity(caller, coordinator_address):
        raise AuthorizationError(
            "Only the VRF coordinator can fulfill randomness.",
            details={"caller": caller, "coordinator": coordinator_address},
        )


def require_player(player: str, caller: str) -> None:
    if not same_identity(caller, player):
        raise AuthorizationError(
            "You are not the winner of this prize.",
            details={"caller": caller},
        )


__all__ = [
    "same_identity",
    "require_admin",
    "require_authority",
    "require_coordinator",
    "require_player",
]
