# -*- coding: utf-8 -*-
# carnival/core/config_core.py
# =============================================================================
# Назначение:
#   • Единый конфигурационный модуль Alphabet Carnival.
#   • Канонический источник настроек: цена билета, порог раунда, получатели
#     операционной комиссии, параметры VRF-оракула, БД и логирование.
#
# Канон / инварианты:
#   1) Цена билета и порог раунда строго > 0.
#   2) Доля первого получателя комиссии в диапазоне 0..100, остаток уходит
#      второму получателю.
#   3) Все идентичности (админ, authority, получатели) хранятся в
#      checksum-виде EVM-адреса.
#   4) Количество слов VRF всегда 1 (не настраивается).
#
# ИИ-защита / самодиагностика:
#   • Валидаторы Pydantic отсекают нулевые цены/пороги и кривые адреса
#     ещё на старте.
#   • build_carnival_config() отказывается собирать состояние без получателей
#     комиссии и без админа.
#
# Запреты:
#   • Никаких секретов в коде, только ENV/.env.
# =============================================================================

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

from eth_utils import is_address, to_checksum_address
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from carnival.models.state_models import CarnivalConfig


# =============================================================================
# Вспомогательные утилиты
# =============================================================================


def normalize_address(value: object) -> str:
    """Приводит EVM-адрес к checksum-виду или бросает ValueError."""
    text_value = str(value or "").strip()
    if not is_address(text_value):
        raise ValueError(f"not a valid address: {text_value!r}")
    return to_checksum_address(text_value)


def _normalize_key_hash(value: object) -> str:
    """key hash VRF: 0x + 64 hex-символа, в нижнем регистре."""
    text_value = str(value or "").strip().lower()
    if not text_value.startswith("0x"):
        text_value = "0x" + text_value
    if len(text_value) != 66:
        raise ValueError("VRF key hash must be 32 bytes (0x + 64 hex chars)")
    int(text_value, 16)
    return text_value


# =============================================================================
# Док-описания полей
# =============================================================================


class _Doc:
    PROJECT_NAME = "Имя проекта (попадает в логи как svc)."
    ENV = "Окружение: production/dev/local (нормализуется в prod/dev/local)."
    DEBUG = "Расширенные логи (только для dev/local)."
    APP_VERSION = "Версия приложения."

    DATABASE_URL = (
        "DSN БД. postgres:// приводится к postgresql+asyncpg://, "
        "sqlite:// к sqlite+aiosqlite://."
    )
    DB_POOL_SIZE = "Размер пула соединений SQLAlchemy (не для sqlite)."
    DB_MAX_OVERFLOW = "Дополнительные соединения в пике (не для sqlite)."

    TICKET_PRICE_WEI = "Цена одного билета в wei (строго > 0)."
    TICKETS_THRESHOLD = "Сколько билетов закрывают раунд и запускают розыгрыш."

    ADMIN_ADDRESS = "Адрес администратора (сеттеры, ручное управление розыгрышем)."
    AUTHORITY_ADDRESS = "Адрес authority, публикующего Merkle-корни (по умолчанию админ)."

    FEE_RECEIVER_1 = "Первый получатель операционной комиссии."
    FEE_RECEIVER_2 = "Второй получатель операционной комиссии."
    FEE_SHARE_1_PERCENT = "Доля первого получателя в процентах (0..100)."

    VRF_KEY_HASH = "key hash (gas lane) VRF-координатора."
    VRF_SUBSCRIPTION_ID = "ID подписки VRF."
    VRF_CALLBACK_GAS_LIMIT = "Бюджет газа на callback fulfillRandomWords."
    VRF_REQUEST_CONFIRMATIONS = "Глубина подтверждений перед ответом оракула."
    VRF_NATIVE_PAYMENT = "Оплата запроса нативной монетой вместо LINK."

    LOG_LEVEL = "Уровень логирования (INFO/DEBUG/WARNING/ERROR)."
    LOG_JSON = "Принудительный JSON-лог даже вне prod."


# =============================================================================
# Настройки приложения (единственный источник истины)
# =============================================================================


class Settings(BaseSettings):
    """
    Контейнер переменных окружения Alphabet Carnival.

    Важное:
      • Секреты берём только из ENV.
      • Суммы в wei, целые числа, без Decimal.
      • Состояние движка собирается из настроек один раз, дальше цена,
        порог и комиссии меняются только админ-операциями движка.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # --------------------------- БАЗОВЫЕ НАСТРОЙКИ ---------------------------
    PROJECT_NAME: str = Field("Alphabet Carnival", description=_Doc.PROJECT_NAME)
    ENV: str = Field("production", description=_Doc.ENV)
    DEBUG: bool = Field(False, description=_Doc.DEBUG)
    APP_VERSION: str = Field("1.0.0", description=_Doc.APP_VERSION)

    # --------------------------------- БАЗА ----------------------------------
    DATABASE_URL: Optional[str] = Field(None, description=_Doc.DATABASE_URL)
    DB_POOL_SIZE: int = Field(10, description=_Doc.DB_POOL_SIZE)
    DB_MAX_OVERFLOW: int = Field(10, description=_Doc.DB_MAX_OVERFLOW)

    # -------------------------------- ЛОТЕРЕЯ --------------------------------
    TICKET_PRICE_WEI: int = Field(
        800_000_000_000_000,
        description=_Doc.TICKET_PRICE_WEI,
    )
    TICKETS_THRESHOLD: int = Field(50, description=_Doc.TICKETS_THRESHOLD)

    ADMIN_ADDRESS: Optional[str] = Field(None, description=_Doc.ADMIN_ADDRESS)
    AUTHORITY_ADDRESS: Optional[str] = Field(
        None,
        description=_Doc.AUTHORITY_ADDRESS,
    )

    # ------------------------------- КОМИССИИ --------------------------------
    FEE_RECEIVER_1: Optional[str] = Field(None, description=_Doc.FEE_RECEIVER_1)
    FEE_RECEIVER_2: Optional[str] = Field(None, description=_Doc.FEE_RECEIVER_2)
    FEE_SHARE_1_PERCENT: int = Field(50, description=_Doc.FEE_SHARE_1_PERCENT)

    # ---------------------------------- VRF ----------------------------------
    VRF_KEY_HASH: str = Field(
        "0x6c3699283bda56ad74f6b855546325b68d482e983852a7a82979cc4807b641f4",
        description=_Doc.VRF_KEY_HASH,
    )
    VRF_SUBSCRIPTION_ID: int = Field(1, description=_Doc.VRF_SUBSCRIPTION_ID)
    VRF_CALLBACK_GAS_LIMIT: int = Field(
        500_000,
        description=_Doc.VRF_CALLBACK_GAS_LIMIT,
    )
    VRF_REQUEST_CONFIRMATIONS: int = Field(
        3,
        description=_Doc.VRF_REQUEST_CONFIRMATIONS,
    )
    VRF_NATIVE_PAYMENT: bool = Field(False, description=_Doc.VRF_NATIVE_PAYMENT)

    # -------------------------------- LOGGING --------------------------------
    LOG_LEVEL: str = Field("INFO", description=_Doc.LOG_LEVEL)
    LOG_JSON: bool = Field(False, description=_Doc.LOG_JSON)

    # =========================== ВАЛИДАТОРЫ ==================================

    @field_validator("TICKET_PRICE_WEI", "TICKETS_THRESHOLD", "VRF_SUBSCRIPTION_ID")
    @classmethod
    def _v_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be > 0")
        return value

    @field_validator("FEE_SHARE_1_PERCENT")
    @classmethod
    def _v_share(cls, value: int) -> int:
        if value < 0 or value > 100:
            raise ValueError("FEE_SHARE_1_PERCENT must be within 0..100")
        return value

    @field_validator("VRF_REQUEST_CONFIRMATIONS", "VRF_CALLBACK_GAS_LIMIT")
    @classmethod
    def _v_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @field_validator(
        "ADMIN_ADDRESS",
        "AUTHORITY_ADDRESS",
        "FEE_RECEIVER_1",
        "FEE_RECEIVER_2",
        mode="before",
    )
    @classmethod
    def _v_address(cls, value: object) -> Optional[str]:
        if value is None or str(value).strip() == "":
            return None
        return normalize_address(value)

    @field_validator("VRF_KEY_HASH", mode="before")
    @classmethod
    def _v_key_hash(cls, value: object) -> str:
        return _normalize_key_hash(value)

    # =========================== Удобные свойства ============================

    @property
    def env_normalized(self) -> str:
        """Нормализует ENV к одному из: prod/dev/local."""
        value = (self.ENV or "").strip().lower()
        if value.startswith("prod"):
            return "prod"
        if value.startswith("dev"):
            return "dev"
        if value.startswith("loc"):
            return "local"
        return "prod"

    @property
    def is_prod(self) -> bool:
        return self.env_normalized == "prod"

    @property
    def is_local(self) -> bool:
        return self.env_normalized == "local"

    @property
    def authority_effective(self) -> Optional[str]:
        """Authority по умолчанию совпадает с админом (владелец публикует корни)."""
        return self.AUTHORITY_ADDRESS or self.ADMIN_ADDRESS

    # ---- База данных / DSN ----
    def database_url_async(self) -> str:
        """
        Возвращает DSN для SQLAlchemy async:
          postgres://   → postgresql+asyncpg://
          postgresql:// → postgresql+asyncpg:// при отсутствии драйвера;
          sqlite://     → sqlite+aiosqlite://.
        """
        if not self.DATABASE_URL:
            raise RuntimeError("DATABASE_URL не задан.")
        url = self.DATABASE_URL
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("sqlite://"):
            url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return url

    @property
    def is_sqlite(self) -> bool:
        return bool(self.DATABASE_URL) and self.database_url_async().startswith("sqlite")

    # ---- Сборка конфигурации движка ----
    def build_carnival_config(self) -> CarnivalConfig:
        """
        Собирает неизменяемую конфигурацию движка из ENV.

        Бросает RuntimeError, если не заданы обязательные адреса: без админа
        никто не сможет разблокировать зависший розыгрыш, без получателей
        комиссия ушла бы в пустоту.
        """
        missing = [
            name
            for name in ("ADMIN_ADDRESS", "FEE_RECEIVER_1", "FEE_RECEIVER_2")
            if getattr(self, name) is None
        ]
        if missing:
            raise RuntimeError(f"Не заданы обязательные адреса: {', '.join(missing)}")

        return CarnivalConfig(
            ticket_price=self.TICKET_PRICE_WEI,
            tickets_threshold=self.TICKETS_THRESHOLD,
            admin=self.ADMIN_ADDRESS,  # type: ignore[arg-type]
            authority=self.authority_effective,  # type: ignore[arg-type]
            fee_receiver_1=self.FEE_RECEIVER_1,  # type: ignore[arg-type]
            fee_receiver_2=self.FEE_RECEIVER_2,  # type: ignore[arg-type]
            fee_share_1_percent=self.FEE_SHARE_1_PERCENT,
            key_hash=self.VRF_KEY_HASH,
            subscription_id=self.VRF_SUBSCRIPTION_ID,
            request_confirmations=self.VRF_REQUEST_CONFIRMATIONS,
            callback_gas_limit=self.VRF_CALLBACK_GAS_LIMIT,
            native_payment=self.VRF_NATIVE_PAYMENT,
        )

    # ---- Health/диагностика ----
    def debug_dump(self) -> Dict[str, str]:
        """Безопасный дамп ключевых настроек (без DSN) для логов."""
        return {
            "env": self.env_normalized,
            "projectName": self.PROJECT_NAME,
            "version": self.APP_VERSION,
            "dbUrlSet": "yes" if bool(self.DATABASE_URL) else "no",
            "ticketPriceWei": str(self.TICKET_PRICE_WEI),
            "ticketsThreshold": str(self.TICKETS_THRESHOLD),
            "feeShare1Percent": str(self.FEE_SHARE_1_PERCENT),
            "vrfSubscriptionId": str(self.VRF_SUBSCRIPTION_ID),
            "adminSet": "yes" if self.ADMIN_ADDRESS else "no",
        }

    def ensure_local_artifacts(self) -> None:
        """Создаёт каталог .local_artifacts для local-режима (логи, sqlite)."""
        if self.is_local:
            Path(".local_artifacts").mkdir(exist_ok=True)


# =============================================================================
# Синглтон настроек для всего приложения
# =============================================================================


@lru_cache()
def get_settings() -> Settings:
    """Создаёт и кэширует объект Settings."""
    settings_obj = Settings()
    settings_obj.ensure_local_artifacts()
    return settings_obj


__all__ = ["Settings", "get_settings", "normalize_address"]

# =============================================================================
# Пояснения «для чайника»:
#   • Все параметры читаются из переменных окружения (или .env) один раз:
#     get_settings() кэширует объект. В тестах собирайте Settings(...) явно.
#   • build_carnival_config() превращает настройки в неизменяемый
#     CarnivalConfig. Без админа, authority и получателей комиссий движок
#     не стартует: сразу RuntimeError со списком пустых полей.
#   • Адреса хранятся в checksum-форме, сравнивайте их через same_identity().
# =============================================================================
