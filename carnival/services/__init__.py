# -*- coding: utf-8 -*-
# carnival/services/__init__.py
# =============================================================================
# Сервисы Alphabet Carnival:
#   • letters_service     : разворачивание случайного слова в 8 букв;
#   • randomness_service  : single-flight протокол запроса случайности;
#   • rounds_service      : жизненный цикл раунда и админ-настройки;
#   • merkle_service      : формат листа и дерева, проверка доказательств;
#   • claims_service      : публикация корня и выплата призов;
#   • fees_service        : операционная комиссия;
#   • engine_service      : атомарный фасад CarnivalEngine;
#   • storage_service     : сохранение и восстановление через БД.
# =============================================================================
