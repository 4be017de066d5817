# -*- coding: utf-8 -*-
# carnival/core/logging_core.py
# =============================================================================
# Назначение кода:
#   Централизованная настройка логирования Alphabet Carnival:
#   • формат и хэндлеры;
#   • контекст операции (op, caller) через contextvars;
#   • защита от утечек секретов (DSN БД);
#   • удобные утилиты для модулей движка.
#
# Канон / инварианты:
#   • Единый стиль логов во всём проекте:
#       - prod: JSON (python-json-logger);
#       - dev/local: человекочитаемый формат.
#   • Значимые операции сопровождаем полями: env, svc, op, caller.
#
# ИИ-защита:
#   • Фильтр редактирует чувствительные значения в сообщениях.
#   • Контекст операции сбрасывается в finally, даже если операция упала.
#
# Запреты:
#   • Никаких сетевых/блокирующих операций в форматерах/фильтрах.
# =============================================================================

from __future__ import annotations

import contextvars
import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

from pythonjsonlogger import json as jsonlogger

from carnival.core.config_core import get_settings


# -----------------------------------------------------------------------------
# Контекст операции (contextvars)
# -----------------------------------------------------------------------------
_op_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "op",
    default=None,
)  # имя операции движка (buy_ticket, claim_prize, ...)
_caller_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "caller",
    default=None,
)  # адрес инициатора


@contextmanager
def operation_context(op: str, caller: Optional[str] = None) -> Iterator[None]:
    """
    Привязывает имя операции и инициатора ко всем логам внутри блока.

    Пример:
        with operation_context("claim_prize", caller=player):
            ...
    """
    op_token = _op_var.set(op)
    caller_token = _caller_var.set(caller)
    try:
        yield
    finally:
        _op_var.reset(op_token)
        _caller_var.reset(caller_token)


# -----------------------------------------------------------------------------
# Фильтры логирования
# -----------------------------------------------------------------------------
class ContextFilter(logging.Filter):
    """
    Впрыскивает в запись логера поля из contextvars и настроек.

    Поля:
      • env    : нормализованная среда (local/dev/prod);
      • svc    : имя сервиса (PROJECT_NAME);
      • op     : текущая операция движка;
      • caller : адрес инициатора операции.
    """

    def __init__(self, env: str, service: str) -> None:
        super().__init__()
        self._env = env
        self._svc = service

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "env"):
            record.env = self._env
        if not hasattr(record, "svc"):
            record.svc = self._svc
        if not hasattr(record, "op"):
            record.op = _op_var.get() or "-"
        if not hasattr(record, "caller"):
            record.caller = _caller_var.get() or "-"
        return True


class RedactingFilter(logging.Filter):
    """
    Маскирует значения секретов, извлечённых из настроек, в тексте сообщения
    и его аргументах.
    """

    MASK = "****"
    SECRET_KEYS: Tuple[str, ...] = ("DATABASE_URL",)

    def __init__(self, settings_obj: object) -> None:
        super().__init__()
        self._secrets: list[str] = []
        for key in self.SECRET_KEYS:
            val = getattr(settings_obj, key, None)
            if val and isinstance(val, str):
                self._secrets.append(val)

    def _redact_text(self, text: str) -> str:
        redacted = text
        for secret in self._secrets:
            if secret in redacted:
                redacted = redacted.replace(secret, self.MASK)
        return redacted

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        if isinstance(record.msg, str):
            record.msg = self._redact_text(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(
                self._redact_text(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )
        return True


# -----------------------------------------------------------------------------
# Форматеры
# -----------------------------------------------------------------------------
class DevFormatter(logging.Formatter):
    """
    Человекочитаемый формат для local/dev-окружений.

    Пример строки:
    2026-10-19 12:00:00 | INFO     | Alphabet Carnival | carnival.services | op=buy_ticket caller=0x... | msg
    """

    def __init__(self) -> None:
        super().__init__(
            fmt=(
                "%(asctime)s | %(levelname)-8s | %(svc)s | %(name)s | "
                "op=%(op)s caller=%(caller)s | %(message)s"
            ),
            datefmt="%Y-%m-%d %H:%M:%S",
        )


class JsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON-формат для prod. Поля из extra={...} попадают в запись как есть,
    поверх них кладутся канонические ключи time/level/service/logger/env/op.
    """

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["time"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["service"] = getattr(record, "svc", "-")
        log_record["logger"] = record.name
        log_record["env"] = getattr(record, "env", "-")
        log_record["op"] = getattr(record, "op", "-")
        log_record["caller"] = getattr(record, "caller", "-")


def _make_json_formatter() -> logging.Formatter:
    return JsonFormatter(fmt="%(message)s")


# -----------------------------------------------------------------------------
# Инициализация логирования
# -----------------------------------------------------------------------------
def setup_logging() -> None:
    """
    Полностью настраивает логирование:

      • root-логгер, формат, уровни;
      • консоль (stdout) и файл (в local);
      • фильтры контекста и редактирования;
      • SQLAlchemy-логгер в режиме DEBUG.
    """
    settings = get_settings()
    env = settings.env_normalized
    debug = bool(settings.DEBUG)
    service = settings.PROJECT_NAME

    root = logging.getLogger()
    root.handlers.clear()
    level = logging.DEBUG if debug else logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO
    root.setLevel(level)

    ctx_filter = ContextFilter(env=env, service=service)
    redact_filter = RedactingFilter(settings_obj=settings)

    # --- Консольный хэндлер ---
    console_handler = logging.StreamHandler(sys.stdout)
    if env in ("local", "dev") and not settings.LOG_JSON:
        formatter: logging.Formatter = DevFormatter()
    else:
        formatter = _make_json_formatter()
    console_handler.setFormatter(formatter)
    console_handler.addFilter(ctx_filter)
    console_handler.addFilter(redact_filter)
    root.addHandler(console_handler)

    # --- Локальный файл логов (только local) ---
    if env == "local":
        logs_dir = Path(".local_artifacts") / "logs"
        logs_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(logs_dir / "carnival.log", encoding="utf-8")
        file_handler.setFormatter(DevFormatter())
        file_handler.addFilter(ctx_filter)
        file_handler.addFilter(redact_filter)
        root.addHandler(file_handler)

    # --- SQLAlchemy (минимальный уровень шума) ---
    if debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={"details": {"env": env, "debug": debug, "level": logging.getLevelName(level)}},
    )


def get_logger(name: Optional[str] = None, **extra: Any) -> logging.Logger:
    """
    Получить логгер по имени и (опционально) привязать дополнительные поля
    через LoggerAdapter.

    Пример:
        log = get_logger(__name__, component="ledger")
    """
    base = logging.getLogger(name)
    if not extra:
        return base
    return logging.LoggerAdapter(base, extra)  # type: ignore[return-value]


# -----------------------------------------------------------------------------
# Автоконфигурация при импорте
# -----------------------------------------------------------------------------
setup_logging()

__all__ = [
    "setup_logging",
    "get_logger",
    "operation_context",
    "ContextFilter",
    "RedactingFilter",
    "DevFormatter",
    "JsonFormatter",
]
