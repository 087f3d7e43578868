"""
Модуль лагов и разностей временных рядов.

- lag_vec: сдвиг серии на `lag` позиций (отрицательный лаг - опережение)
- diff_vec: лаговые разности порядка `difference` (опционально логарифмические)
- diff_inv_vec: обратное преобразование к diff_vec по начальным значениям

Все функции сохраняют длину входа: недостающие значения заполняются NaN.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .validation import validate_int_values, validate_positive_int

__all__ = ["lag_vec", "diff_vec", "diff_inv_vec"]

logger = logging.getLogger(__name__)


def _as_float_series(x: Any) -> pd.Series:
    if isinstance(x, pd.Series):
        return x.astype(float)
    return pd.Series(np.asarray(x, dtype=float))


def lag_vec(x: Any, lag: int = 1) -> Union[pd.Series, np.ndarray]:
    """
    Лаг серии: Lag[t] = X[t - lag].

    Первые `lag` значений - NaN; при отрицательном лаге NaN в конце.
    """
    lag = validate_int_values(lag, "lag", positive=False)
    if len(lag) != 1:
        raise ValueError("lag_vec() принимает одно значение 'lag'")

    series = _as_float_series(x)
    result = series.shift(lag[0])
    return result if isinstance(x, pd.Series) else result.to_numpy()


def diff_vec(
    x: Any,
    lag: int = 1,
    difference: int = 1,
    log: bool = False,
    silent: bool = True,
) -> Union[pd.Series, np.ndarray]:
    """
    Лаговые разности.

    D[t] = X[t] - X[t - lag], повторяется `difference` раз.
    При log=True считается разность логарифмов (лог-доходность для lag=1).

    Args:
        x: Числовая серия.
        lag: Шаг разности (положительное целое).
        difference: Порядок разности (положительное целое).
        log: Логарифмические разности.
        silent: Если False, в лог пишутся начальные значения, нужные для diff_inv_vec.

    Returns:
        Серия той же длины; первые lag * difference значений - NaN.
    """
    lag = validate_positive_int(lag, "lag")
    difference = validate_positive_int(difference, "difference")

    series = _as_float_series(x)
    n_initial = lag * difference

    if not silent:
        initial = ", ".join(f"{v:g}" for v in series.iloc[:n_initial])
        prefix = "diff_vec(): Using log difference. " if log else "diff_vec(): "
        logger.info(f"{prefix}Initial values: {initial}")

    result = np.log(series) if log else series
    for _ in range(difference):
        result = result - result.shift(lag)

    return result if isinstance(x, pd.Series) else result.to_numpy()


def _lagged_diff(values: np.ndarray, lag: int, difference: int) -> np.ndarray:
    for _ in range(difference):
        values = values[lag:] - values[:-lag]
    return values


def _diff_inverse(values: np.ndarray, lag: int, difference: int, initial: np.ndarray) -> np.ndarray:
    # Рекурсия как у классического diffinv: сначала восстанавливаем разности порядка difference-1
    if difference == 1:
        out = np.empty(len(values) + lag, dtype=float)
        out[:lag] = initial
        for i, v in enumerate(values):
            out[i + lag] = v + out[i]
        return out

    inner_initial = _lagged_diff(initial, lag, difference - 1)
    restored = _diff_inverse(values, lag, 1, inner_initial)
    return _diff_inverse(restored, lag, difference - 1, initial[: lag * (difference - 1)])


def diff_inv_vec(
    x: Any,
    lag: int = 1,
    difference: int = 1,
    log: bool = False,
    initial_values: Optional[Sequence[float]] = None,
) -> Union[pd.Series, np.ndarray]:
    """
    Обратное преобразование к diff_vec.

    Ведущие NaN (паддинг от diff_vec) отбрасываются, затем ряд интегрируется
    с начальными значениями `initial_values` (в исходной шкале, длина
    lag * difference). Без initial_values используются нули (для log - единицы).

    Example:
        >>> x = pd.Series([10., 12., 15., 19.])
        >>> diff_inv_vec(diff_vec(x), initial_values=[10.])
        0    10.0
        1    12.0
        2    15.0
        3    19.0
        dtype: float64
    """
    lag = validate_positive_int(lag, "lag")
    difference = validate_positive_int(difference, "difference")
    n_initial = lag * difference

    series = _as_float_series(x)
    values = series.to_numpy()
    not_na = np.flatnonzero(~np.isnan(values))
    leading = int(not_na[0]) if len(not_na) else len(values)
    trimmed = values[leading:]

    if initial_values is None:
        initial = np.ones(n_initial) if log else np.zeros(n_initial)
    else:
        initial = np.asarray(initial_values, dtype=float)
        if len(initial) != n_initial:
            raise ValueError(
                f"'initial_values' должен содержать lag * difference = {n_initial} значений, получено: {len(initial)}"
            )
    if log:
        initial = np.log(initial)

    restored = _diff_inverse(trimmed, lag, difference, initial)
    if log:
        restored = np.exp(restored)

    if isinstance(x, pd.Series):
        index = series.index if len(restored) == len(series) else None
        return pd.Series(restored, index=index, name=series.name)
    return restored
