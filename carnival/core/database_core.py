# -*- coding: utf-8 -*-
# carnival/core/database_core.py
# =============================================================================
# Назначение кода:
#   • Единая точка работы с БД Alphabet Carnival (SQLAlchemy 2.0 async).
#   • Создание и конфигурация AsyncEngine и async_sessionmaker.
#   • Безопасная выдача сессий для storage-сервиса.
#   • Базовые health-утилиты (ping, мягкий реинициализатор, создание таблиц).
#
# Канон / инварианты:
#   • Только async-движок (create_async_engine).
#   • DSN берём из Settings.database_url_async(), если он не передан явно.
#   • Для sqlite параметры пула не передаются (aiosqlite их не поддерживает).
#   • Сессии expire_on_commit=False, autoflush=False.
#
# ИИ-защита:
#   • При ошибке внутри lifespan_session() транзакция откатывается, ошибка
#     пробрасывается наверх.
#   • db_ping() не бросает, а возвращает False.
#
# Запреты:
#   • Никакой бизнес-логики лотереи в этом модуле.
# =============================================================================

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from carnival.core.config_core import get_settings
from carnival.core.logging_core import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Декларативная база всех таблиц хранилища."""


# -----------------------------------------------------------------------------
# Глобальные объекты: движок и фабрика сессий
# -----------------------------------------------------------------------------
_engine: Optional[AsyncEngine] = None
_SessionFactory: Optional[async_sessionmaker[AsyncSession]] = None
_engine_lock = asyncio.Lock()


def _create_engine(dsn: Optional[str] = None) -> AsyncEngine:
    """
    Создаёт новый AsyncEngine.

    • dsn=None → берём из настроек (database_url_async()).
    • Для не-sqlite включаем пул и pool_pre_ping.
    """
    settings = get_settings()
    url = dsn or settings.database_url_async()
    logger.info("Creating async DB engine", extra={"sqlite": url.startswith("sqlite")})
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.DEBUG)
    return create_async_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        echo=settings.DEBUG,
    )


def _create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
        class_=AsyncSession,
    )


async def reset_engine(dsn: Optional[str] = None) -> AsyncEngine:
    """
    Мягко пересоздаёт движок и фабрику сессий (в том числе на другой DSN).

    Старый движок закрывается через dispose() только после того, как новый
    успешно создан.
    """
    global _engine, _SessionFactory

    async with _engine_lock:
        old_engine = _engine
        try:
            new_engine = _create_engine(dsn)
        except Exception:
            logger.exception("Failed to reset DB engine")
            raise
        _engine = new_engine
        _SessionFactory = _create_session_factory(new_engine)
        logger.info("DB engine has been reset successfully")

    if old_engine is not None:
        await old_engine.dispose()
    return new_engine


async def dispose_engine() -> None:
    """Закрывает текущий движок (остановка процесса, конец тестов)."""
    global _engine, _SessionFactory

    engine = _engine
    _engine = None
    _SessionFactory = None
    if engine is not None:
        await engine.dispose()
        logger.info("DB engine disposed")


def get_engine() -> AsyncEngine:
    """Текущий AsyncEngine; при первом обращении создаётся лениво из настроек."""
    global _engine, _SessionFactory

    if _engine is None:
        _engine = _create_engine()
        _SessionFactory = _create_session_factory(_engine)
        logger.info("DB engine lazily initialized")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _SessionFactory

    if _SessionFactory is None:
        _SessionFactory = _create_session_factory(get_engine())
    return _SessionFactory


@asynccontextmanager
async def lifespan_session() -> AsyncIterator[AsyncSession]:
    """
    Сессия на одну единицу работы.

    Пример:
        async with lifespan_session() as db:
            await svc_persist_engine(db, engine)
            await db.commit()
    """
    session = get_session_factory()()
    try:
        yield session
    except Exception:
        logger.exception("DB session error, rolling back")
        await session.rollback()
        raise
    finally:
        await session.close()


async def init_models() -> None:
    """Создаёт таблицы хранилища (CREATE TABLE IF NOT EXISTS)."""
    from carnival.models import storage_models  # noqa: F401  регистрирует таблицы

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Storage tables ensured", extra={"tables": sorted(Base.metadata.tables)})


async def db_ping() -> bool:
    """True, если SELECT 1 прошёл; False, если БД не отвечает."""
    engine = get_engine()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except (OperationalError, DBAPIError) as exc:
        logger.error("DB ping failed: DB is not reachable", extra={"error": str(exc)})
        return False


__all__ = [
    "Base",
    "AsyncSession",
    "AsyncEngine",
    "get_engine",
    "get_session_factory",
    "lifespan_session",
    "init_models",
    "db_ping",
    "reset_engine",
    "dispose_engine",
]

# =============================================================================
# Пояснения «для чайника»:
#   • Движок БД создаётся лениво при первом get_engine(). Для тестов
#     вызывайте reset_engine("sqlite+aiosqlite:///путь") и init_models().
#   • lifespan_session() не коммитит сам: commit делает вызывающий код,
#     при исключении выполняется rollback.
# =============================================================================
