"""
Проверки параметров и имён колонок, общие для векторных функций и шагов.
"""

from __future__ import annotations

from typing import Any, Iterable, List

import numpy as np
import pandas as pd

__all__ = ["validate_positive_int", "validate_int_values", "as_list", "check_name"]


def validate_positive_int(value: Any, name: str) -> int:
    """Возвращает `value` как int или бросает ValueError, если это не положительное целое."""
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, (int, np.integer)):
        raise ValueError(f"'{name}' должен быть целым числом, получено: {value!r}")
    if value <= 0:
        raise ValueError(f"'{name}' должен быть положительным, получено: {value}")
    return int(value)


def as_list(values: Any) -> List[Any]:
    """Скаляр -> [скаляр], итерируемое (кроме строк) -> список."""
    if values is None:
        return []
    if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        return [values]
    return list(values)


def validate_int_values(values: Any, name: str, positive: bool = True) -> List[int]:
    """
    Проверяет, что все значения целочисленные (1 и 1.0 допустимы, 1.5 - нет).

    Returns:
        Список int в исходном порядке.
    """
    items = as_list(values)
    if not items:
        raise ValueError(f"'{name}' не может быть пустым")

    result = []
    for v in items:
        if isinstance(v, (bool, np.bool_)) or not isinstance(v, (int, float, np.integer, np.floating)):
            raise ValueError(f"'{name}' должен содержать только целые значения, получено: {v!r}")
        if not float(v).is_integer():
            raise ValueError(f"'{name}' должен содержать только целые значения, получено: {v!r}")
        iv = int(v)
        if positive and iv <= 0:
            raise ValueError(f"'{name}' должен содержать только положительные значения, получено: {v!r}")
        result.append(iv)
    return result


def check_name(new_names: List[str], data: pd.DataFrame) -> None:
    """Бросает ValueError, если сгенерированные имена совпадают с существующими колонками или между собой."""
    clashes = [name for name in new_names if name in data.columns]
    if clashes:
        raise ValueError(
            f"Конфликт имён колонок. Следующие колонки уже существуют: {', '.join(map(str, clashes))}"
        )
    duplicated = sorted({name for name in new_names if new_names.count(name) > 1})
    if duplicated:
        raise ValueError(f"Сгенерированы повторяющиеся имена колонок: {', '.join(duplicated)}")
