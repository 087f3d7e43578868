"""
Модуль скользящих окон (rolling windows).

Переводит семантический запрос на выравнивание окна ("center", "left", "right")
в явные размеры окна до/после текущей позиции, делегирует вычисление окон
pandas (Series.rolling с собственным BaseIndexer) и применяет политику
неполных окон (partial).

Длина результата всегда равна длине входа, поэтому результат можно
прикрепить к исходному DataFrame как новую колонку.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Sequence, Union

import numpy as np
import pandas as pd
from pandas.api.indexers import BaseIndexer

from .validation import validate_positive_int

__all__ = [
    "Alignment",
    "ExtentPair",
    "ExtentIndexer",
    "resolve_alignment",
    "resolve_extents",
    "resolve_summary_fn",
    "slide_apply",
    "apply_partial_policy",
    "slidify_vec",
    "slidify",
]

SummaryFn = Union[Callable[..., Any], str]

# Имена функций numpy, допустимые как строковый агрегат окна
NUMPY_REDUCERS = frozenset({
    "mean", "median", "sum", "prod", "min", "max", "std", "var",
    "amin", "amax", "average", "quantile", "percentile", "count_nonzero",
    "nanmean", "nanmedian", "nansum", "nanprod", "nanmin", "nanmax", "nanstd", "nanvar",
    "nanquantile", "nanpercentile",
})


class Alignment(str, Enum):
    """Выравнивание окна относительно текущей позиции."""

    CENTER = "center"
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class ExtentPair:
    """Количество элементов окна до (`before`) и после (`after`) текущей позиции."""

    before: int
    after: int

    @property
    def period(self) -> int:
        return self.before + self.after + 1


class ExtentIndexer(BaseIndexer):
    """
    Индексатор окон для pandas rolling.

    Окно позиции i: [i - before, i + after], обрезанное границами серии.
    Граничные окна не пропускаются, а становятся неполными.
    """

    def get_window_bounds(
        self,
        num_values: int = 0,
        min_periods: int | None = None,
        center: bool | None = None,
        closed: str | None = None,
        step: int | None = None,
    ) -> tuple[np.ndarray, np.ndarray]:
        positions = np.arange(num_values, dtype=np.int64)
        start = np.clip(positions - self.before, 0, num_values).astype(np.int64)
        end = np.clip(positions + self.after + 1, 0, num_values).astype(np.int64)
        return start, end


def resolve_alignment(align: Union[Alignment, str]) -> Alignment:
    """
    Приводит токен выравнивания к `Alignment`.

    Последовательность токенов не усекается до первого элемента, а отклоняется.
    """
    if isinstance(align, Alignment):
        return align
    if not isinstance(align, str):
        raise ValueError(
            f"'align' должен быть одним значением из {[a.value for a in Alignment]}, получено: {align!r}"
        )
    try:
        return Alignment(align)
    except ValueError:
        raise ValueError(
            f"Неизвестное выравнивание '{align}'. Допустимые значения: {[a.value for a in Alignment]}"
        ) from None


def resolve_extents(period: int, align: Union[Alignment, str] = Alignment.CENTER) -> ExtentPair:
    """
    Переводит (period, align) в пару (before, after).

    - center: before = floor((period - 1) / 2), after = ceil((period - 1) / 2)
    - left:   before = 0, after = period - 1
    - right:  before = period - 1, after = 0

    Для чётного периода при center лишний элемент уходит в `after`.
    """
    period = validate_positive_int(period, "period")
    align = resolve_alignment(align)

    if align is Alignment.CENTER:
        split_period = (period - 1) / 2
        return ExtentPair(before=math.floor(split_period), after=math.ceil(split_period))
    if align is Alignment.LEFT:
        return ExtentPair(before=0, after=period - 1)
    return ExtentPair(before=period - 1, after=0)


def resolve_summary_fn(f: SummaryFn) -> Callable[..., Any]:
    """
    Возвращает функцию-агрегат: callable как есть, строку - как имя
    агрегирующей функции numpy из NUMPY_REDUCERS.
    """
    if callable(f):
        return f
    if isinstance(f, str) and f in NUMPY_REDUCERS:
        return getattr(np, f)
    raise ValueError(f"Функция агрегирования не найдена: {f!r}")


def _undefined_as_nan(func: Callable[..., Any]) -> Callable[..., Any]:
    # None и pd.NA - допустимый результат "не определено", pandas требует число
    def _apply(window: np.ndarray, *args, **kwargs) -> Any:
        value = func(window, *args, **kwargs)
        if value is None or value is pd.NA:
            return np.nan
        return value

    return _apply


def _as_float_series(x: Any) -> pd.Series:
    if isinstance(x, pd.Series):
        return x
    return pd.Series(np.asarray(x, dtype=float))


def _restore_container(values: pd.Series, original: Any) -> Union[pd.Series, np.ndarray]:
    if isinstance(original, pd.Series):
        return values
    return values.to_numpy()


def slide_apply(x: Any, extents: ExtentPair, f: SummaryFn, *args, **kwargs) -> Union[pd.Series, np.ndarray]:
    """
    Применяет `f` к каждому окну серии (шаг 1, неполные окна не пропускаются).

    `f` получает numpy-массив значений окна и дополнительные аргументы.
    Результат `f` - число или None / pd.NA (становится NaN). Исключения из `f`
    не перехватываются.
    """
    func = _undefined_as_nan(resolve_summary_fn(f))
    series = _as_float_series(x)
    indexer = ExtentIndexer(before=extents.before, after=extents.after)
    result = series.rolling(indexer, min_periods=0).apply(func, raw=True, args=args, kwargs=kwargs)
    return _restore_container(result, x)


def apply_partial_policy(values: Any, extents: ExtentPair, partial: bool = False) -> Any:
    """
    Политика неполных окон.

    partial=True - значения не меняются. partial=False - первые `before` и
    последние `after` позиций заменяются на пропуск (NaN, для object - None).
    Вход не изменяется.
    """
    if partial:
        return values

    is_series = isinstance(values, pd.Series)
    out = values.copy() if is_series else np.array(values, copy=True)
    is_object = pd.api.types.is_object_dtype(out.dtype)
    if not is_object and not pd.api.types.is_float_dtype(out.dtype):
        out = out.astype(float)
    n = len(out)
    missing = None if is_object else np.nan
    target = out.iloc if is_series else out

    if extents.before > 0:
        target[: min(extents.before, n)] = missing
    if extents.after > 0:
        target[max(n - extents.after, 0):] = missing
    return out


def slidify_vec(
    x: Any,
    f: SummaryFn,
    *args,
    period: int = 1,
    align: Union[Alignment, str] = Alignment.CENTER,
    partial: bool = False,
    **kwargs,
) -> Union[pd.Series, np.ndarray]:
    """
    Скользящее преобразование вектора.

    Args:
        x: Числовая серия (pd.Series, np.ndarray или список).
        f: Функция-агрегат окна или имя функции numpy ('mean', 'nanmedian', ...).
        *args, **kwargs: Дополнительные аргументы для `f`.
        period: Размер окна.
        align: 'center', 'left' или 'right'.
        partial: Разрешить неполные окна на краях вместо NaN.

    Returns:
        pd.Series (с исходным индексом), если на вход пришла серия, иначе np.ndarray.
        Длина результата равна длине входа.

    Example:
        >>> slidify_vec([1, 2, 3, 4, 5], np.mean, period=3, align='right')
        array([nan, nan,  2.,  3.,  4.])
    """
    extents = resolve_extents(period, align)
    values = slide_apply(x, extents, f, *args, **kwargs)
    return apply_partial_policy(values, extents, partial)


def slidify(
    f: Callable[..., Any],
    period: int = 1,
    align: Union[Alignment, str] = Alignment.CENTER,
    partial: bool = False,
    unlist: bool = True,
) -> Callable[..., Union[pd.Series, np.ndarray]]:
    """
    Превращает функцию нескольких аргументов в скользящую.

    Возвращаемая функция принимает одну или несколько серий одинаковой длины и
    вызывает `f` с окнами каждой из них (скользящая корреляция, регрессия и т.п.).
    При unlist=False результаты сохраняются как объекты (например, модели).

    Example:
        >>> rolling_cor = slidify(lambda a, b: np.corrcoef(a, b)[0, 1], period=20, align='right')
        >>> df['cor_20'] = rolling_cor(df['x'], df['y'])
    """
    extents = resolve_extents(period, align)

    def _rolling(*series: Sequence, **kwargs) -> Union[pd.Series, np.ndarray]:
        if not series:
            raise ValueError("Нужна хотя бы одна серия")
        arrays = [np.asarray(s) for s in series]
        n = len(arrays[0])
        if any(len(a) != n for a in arrays):
            raise ValueError("Все серии должны иметь одинаковую длину")

        start, end = ExtentIndexer(before=extents.before, after=extents.after).get_window_bounds(n)
        results = [f(*(a[s:e] for a in arrays), **kwargs) for s, e in zip(start, end)]

        if unlist:
            values = np.asarray([np.nan if r is None or r is pd.NA else r for r in results], dtype=float)
        else:
            values = np.empty(n, dtype=object)
            for i, item in enumerate(results):
                values[i] = item

        first = series[0]
        if isinstance(first, pd.Series):
            values = pd.Series(values, index=first.index, dtype=values.dtype)
        return apply_partial_policy(values, extents, partial)

    return _rolling
