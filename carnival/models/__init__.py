# -*- coding: utf-8 -*-
# carnival/models/__init__.py
# =============================================================================
# Назначение кода:
#   Слой моделей Alphabet Carnival:
#   • state_models  : неизменяемое состояние движка и переходы;
#   • events_models : события операций;
#   • storage_models: SQLAlchemy-таблицы (импортируются явно, по требованию).
#
# Запреты:
#   • Не импортировать здесь storage_models: config_core зависит от
#     state_models, а storage_models зависит от database_core → config_core.
# =============================================================================
