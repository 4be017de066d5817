# -*- coding: utf-8 -*-
# carnival/services/letters_service.py
# =============================================================================
# Назначение кода:
#   Детерминированное разворачивание одного случайного слова в 8 различных
#   выигрышных букв из алфавита 1..26.
#
# Канон/инварианты:
#   • Цифры основания 26 берутся с младшей: candidate = rem % 26 + 1,
#     rem = rem // 26.
#   • При коллизии кандидат сдвигается вперёд на 1 с переходом 26 → 1, пока
#     не найдётся свободная буква.
#   • Результат бит-в-бит воспроизводим: одинаковое слово даёт одинаковые
#     буквы в одинаковом порядке.
#
# Запреты:
#   • Никакой сортировки и перемешивания результата.
# =============================================================================

from __future__ import annotations

from typing import Tuple

from carnival.core.errors_core import ValidationError

ALPHABET_SIZE = 26
WINNING_LETTERS_COUNT = 8
UINT256_MAX = 2**256 - 1


def expand_winning_letters(random_value: int) -> Tuple[int, ...]:
    """
    Разворачивает слово случайности в 8 различных букв 1..26.

    Пример:
        expand_winning_letters(0)   -> (1, 2, 3, 4, 5, 6, 7, 8)
        expand_winning_letters(81)  -> (4, 5, 1, 2, 3, 6, 7, 8)
    """
    if isinstance(random_value, bool) or not isinstance(random_value, int):
        raise ValidationError(
            "Random value must be an integer.",
            details={"type": type(random_value).__name__},
        )
    if random_value < 0 or random_value > UINT256_MAX:
        raise ValidationError("Random value must fit uint256.")

    used = [False] * (ALPHABET_SIZE + 1)
    letters = []
    remainder = random_value
    for _ in range(WINNING_LETTERS_COUNT):
        candidate = remainder % ALPHABET_SIZE + 1
        remainder //= ALPHABET_SIZE
        while used[candidate]:
            candidate = candidate % ALPHABET_SIZE + 1
        used[candidate] = True
        letters.append(candidate)
    return tuple(letters)


__all__ = [
    "ALPHABET_SIZE",
    "WINNING_LETTERS_COUNT",
    "expand_winning_letters",
]
