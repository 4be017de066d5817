# -*- coding: utf-8 -*-
# carnival/core/__init__.py
# =============================================================================
# Назначение кода:
#   Ядро Alphabet Carnival: настройки, логирование, ошибки, замок исполнения,
#   проверки полномочий, подключение к БД.
#
# Запреты:
#   • Не импортировать здесь сервисы и CRUD.
#   • Не импортировать модули ядра жадно: config_core подтягивает модели
#     состояния, и порядок импорта должен оставаться линейным.
# =============================================================================

# Версия ядра (повышать при несовместимых изменениях формата состояния)
CORE_VERSION = "1.0.0"
