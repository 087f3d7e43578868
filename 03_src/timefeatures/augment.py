"""
Массовое добавление признаков в DataFrame.

Строит сетку параметров (колонка x лаг x порядок разности, колонка x период)
и добавляет по одной колонке на каждую комбинацию. Поддерживает расчёт по
группам (окна и сдвиги не пересекают границы групп) и параллельный расчёт
колонок через joblib.
"""

from __future__ import annotations

import itertools
import logging
from functools import partial as bind
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from .differencing import diff_vec, lag_vec
from .rolling import Alignment, SummaryFn, resolve_extents, resolve_summary_fn, slidify_vec
from .validation import as_list, check_name, validate_int_values

__all__ = [
    "augment_lags",
    "augment_diffs",
    "augment_slidify",
    "diff_feature_names",
    "lag_feature_names",
    "slidify_feature_names",
]

logger = logging.getLogger(__name__)

Task = Tuple[str, str, Callable[[pd.Series], Any]]


def diff_feature_names(columns: Sequence[str], lags: Sequence[int], differences: Sequence[int],
                       prefix: str = "diff_") -> List[Tuple[str, str, int, int]]:
    """Сетка (имя, колонка, лаг, порядок) в порядке колонка -> лаг -> порядок."""
    return [
        (f"{prefix}{lag}_{diff}_{col}", col, lag, diff)
        for col, lag, diff in itertools.product(columns, lags, differences)
    ]


def lag_feature_names(columns: Sequence[str], lags: Sequence[int], prefix: str = "lag_") -> List[Tuple[str, str, int]]:
    return [(f"{prefix}{lag}_{col}", col, lag) for col, lag in itertools.product(columns, lags)]


def slidify_feature_names(columns: Sequence[str], periods: Sequence[int]) -> List[Tuple[str, str, int]]:
    return [(f"{col}_roll_{period}", col, period) for col, period in itertools.product(columns, periods)]


def _select_columns(df: pd.DataFrame, columns: Any) -> List[str]:
    cols = as_list(columns)
    if not cols:
        raise ValueError("Не указаны колонки для преобразования")
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise KeyError(f"В датасете отсутствуют колонки: {missing}")
    return cols


def _needed(column: str, group_by: List[str]) -> List[str]:
    return list(dict.fromkeys([column] + group_by))


def _compute_column(frame: pd.DataFrame, column: str, func: Callable[[pd.Series], Any],
                    group_by: List[str]) -> np.ndarray:
    if not group_by:
        return np.asarray(func(frame[column]))
    grouped = frame.groupby(group_by, sort=False, dropna=False, group_keys=False)[column]
    return grouped.transform(func).to_numpy()


def _run_tasks(df: pd.DataFrame, tasks: List[Task], group_by: Any = None, n_jobs: int = 1) -> pd.DataFrame:
    """
    Выполняет задачи (новое имя, колонка, функция) и собирает итоговый DataFrame.

    Расчёт идёт по позициям строк, поэтому индекс исходного DataFrame
    (в том числе неуникальный) сохраняется без изменений.
    """
    group_cols = as_list(group_by)
    missing = [g for g in group_cols if g not in df.columns]
    if missing:
        raise KeyError(f"В датасете отсутствуют колонки группировки: {missing}")

    check_name([name for name, _, _ in tasks], df)
    frame = df.reset_index(drop=True)

    if n_jobs == 1 or len(tasks) <= 1:
        values = [_compute_column(frame[_needed(col, group_cols)], col, func, group_cols) for _, col, func in tasks]
    else:
        logger.info(f"Computing {len(tasks)} features with n_jobs={n_jobs}")
        values = Parallel(n_jobs=n_jobs)(
            delayed(_compute_column)(frame[_needed(col, group_cols)], col, func, group_cols)
            for _, col, func in tasks
        )

    # Сборка одним вызовом, без фрагментации DataFrame
    new_data = {name: vals for (name, _, _), vals in zip(tasks, values)}
    features = pd.DataFrame(new_data, index=frame.index)
    result = pd.concat([frame, features], axis=1)
    result.index = df.index
    return result


def _slidify_column(x: pd.Series, func: Callable[..., Any], args: tuple, kwargs: dict,
                    period: int, align: Union[Alignment, str], partial: bool) -> pd.Series:
    return slidify_vec(x, func, *args, period=period, align=align, partial=partial, **kwargs)


def augment_lags(
    df: pd.DataFrame,
    columns: Union[str, Sequence[str]],
    lags: Union[int, Sequence[int]] = 1,
    prefix: str = "lag_",
    group_by: Optional[Union[str, Sequence[str]]] = None,
    n_jobs: int = 1,
) -> pd.DataFrame:
    """Добавляет колонки `<prefix><lag>_<column>` для каждой пары (колонка, лаг)."""
    cols = _select_columns(df, columns)
    lag_values = validate_int_values(lags, "lags", positive=False)

    tasks = [(name, col, bind(lag_vec, lag=lag)) for name, col, lag in lag_feature_names(cols, lag_values, prefix)]
    return _run_tasks(df, tasks, group_by, n_jobs)


def augment_diffs(
    df: pd.DataFrame,
    columns: Union[str, Sequence[str]],
    lags: Union[int, Sequence[int]] = 1,
    differences: Union[int, Sequence[int]] = 1,
    log: bool = False,
    prefix: str = "diff_",
    group_by: Optional[Union[str, Sequence[str]]] = None,
    n_jobs: int = 1,
) -> pd.DataFrame:
    """
    Добавляет разности для каждой комбинации (колонка, лаг, порядок разности).

    Имена колонок: `<prefix><lag>_<difference>_<column>`, например `diff_1_2_close`.
    Конфликт с существующей колонкой - ValueError.
    """
    cols = _select_columns(df, columns)
    lag_values = validate_int_values(lags, "lags")
    diff_values = validate_int_values(differences, "differences")

    tasks = [
        (name, col, bind(diff_vec, lag=lag, difference=diff, log=log, silent=True))
        for name, col, lag, diff in diff_feature_names(cols, lag_values, diff_values, prefix)
    ]
    return _run_tasks(df, tasks, group_by, n_jobs)


def augment_slidify(
    df: pd.DataFrame,
    columns: Union[str, Sequence[str]],
    period: Union[int, Sequence[int]],
    f: SummaryFn,
    *args,
    align: Union[Alignment, str] = Alignment.CENTER,
    partial: bool = False,
    names: Optional[Sequence[str]] = None,
    group_by: Optional[Union[str, Sequence[str]]] = None,
    n_jobs: int = 1,
    **kwargs,
) -> pd.DataFrame:
    """
    Добавляет скользящие агрегаты для каждой пары (колонка, период).

    По умолчанию имена `<column>_roll_<period>`; `names` задаёт их явно и
    должен совпадать по длине с сеткой параметров.
    """
    cols = _select_columns(df, columns)
    periods = validate_int_values(period, "period")
    for p in periods:
        resolve_extents(p, align)
    func = resolve_summary_fn(f)

    grid = slidify_feature_names(cols, periods)
    if names is not None:
        names = as_list(names)
        if len(names) != len(grid):
            raise ValueError(
                f"Длина 'names' ({len(names)}) должна совпадать с количеством комбинаций ({len(grid)})"
            )
        grid = [(name, col, p) for name, (_, col, p) in zip(names, grid)]

    tasks = [
        (name, col, bind(_slidify_column, func=func, args=args, kwargs=kwargs, period=p, align=align, partial=partial))
        for name, col, p in grid
    ]
    return _run_tasks(df, tasks, group_by, n_jobs)
