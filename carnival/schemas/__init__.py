# -*- coding: utf-8 -*-
# carnival/schemas/__init__.py
# Проводные форматы Alphabet Carnival (pydantic).

from carnival.schemas.carnival_schemas import (  # noqa: F401
    ClaimIn,
    ClaimRequestIn,
    CommitmentIn,
    RoundOut,
)
