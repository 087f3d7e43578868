"""
Шаги препроцессинга для временных рядов в виде sklearn-трансформеров.

fit() выбирает колонки по селекторам (имена или fnmatch-шаблоны) на
обучающих данных, transform() добавляет признаки. Шаги можно
использовать отдельно, в `Recipe` или в `sklearn.pipeline.Pipeline`.

- StepLag: лаги `<prefix><lag>_<column>`
- StepDiff: разности `<prefix><lag>_<difference>_<column>`
- StepSlidify: скользящие агрегаты (перезапись колонок или новые имена)
"""

from __future__ import annotations

import fnmatch
import itertools
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.utils.validation import check_is_fitted

from .augment import augment_diffs, augment_lags, augment_slidify, diff_feature_names, lag_feature_names
from .rolling import Alignment, resolve_extents, resolve_summary_fn, slidify_vec
from .validation import as_list, validate_int_values

__all__ = ["TimeSeriesStep", "StepLag", "StepDiff", "StepSlidify", "select_columns"]


def select_columns(df: pd.DataFrame, terms: Any) -> List[str]:
    """
    Выбирает колонки по списку имён и/или fnmatch-шаблонов.

    Порядок - порядок селекторов, затем порядок колонок в DataFrame. Без совпадений - ValueError.
    """
    selectors = as_list(terms)
    if not selectors:
        raise ValueError("Не заданы селекторы колонок (terms)")

    selected: List[str] = []
    for term in selectors:
        if term in df.columns:
            matches = [term]
        else:
            matches = [c for c in df.columns if isinstance(c, str) and fnmatch.fnmatch(c, str(term))]
        for col in matches:
            if col not in selected:
                selected.append(col)

    if not selected:
        raise ValueError(f"Ни одна колонка не соответствует селекторам: {selectors}")
    return selected


class TimeSeriesStep(TransformerMixin, BaseEstimator):
    """
    Базовый шаг.

    Подклассы реализуют `_check_params`, `_bake`, `_new_columns` и `tidy`.
    skip=True: шаг применяется при fit_transform (обучение), но
    последующие transform() возвращают данные без изменений.
    """

    kind = "step"
    title = "Step"

    def _check_params(self) -> None:
        pass

    def _bake(self, X: pd.DataFrame) -> pd.DataFrame:
        raise NotImplementedError

    def _new_columns(self) -> List[str]:
        return []

    @staticmethod
    def _ensure_frame(X: Any) -> pd.DataFrame:
        if not isinstance(X, pd.DataFrame):
            raise TypeError(f"Ожидается pandas.DataFrame, получено: {type(X).__name__}")
        return X

    def fit(self, X: pd.DataFrame, y: Any = None) -> "TimeSeriesStep":
        X = self._ensure_frame(X)
        self._check_params()
        self.columns_ = select_columns(X, self.terms)
        self.feature_names_in_ = np.asarray(X.columns, dtype=object)
        self.n_features_in_ = X.shape[1]
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self, "columns_")
        X = self._ensure_frame(X)
        if self.skip:
            return X
        self._check_params()
        return self._bake(X)

    def fit_transform(self, X: pd.DataFrame, y: Any = None, **fit_params) -> pd.DataFrame:
        return self.fit(X, y)._bake(X)

    @property
    def trained(self) -> bool:
        return hasattr(self, "columns_")

    def get_feature_names_out(self, input_features: Optional[Sequence[str]] = None) -> np.ndarray:
        check_is_fitted(self, "columns_")
        base = list(input_features) if input_features is not None else list(self.feature_names_in_)
        return np.asarray(base + [c for c in self._new_columns() if c not in base], dtype=object)

    def describe(self) -> str:
        """Краткое описание шага, например 'Differencing on close, volume [trained]'."""
        if self.trained:
            return f"{self.title} on {', '.join(map(str, self.columns_))} [trained]"
        return f"{self.title} on {', '.join(map(str, as_list(self.terms)))}"

    def _terms(self) -> List[Any]:
        return list(self.columns_) if self.trained else as_list(self.terms)


class StepLag(TimeSeriesStep):
    """Лаги выбранных колонок."""

    kind = "lag"
    title = "Lagging"

    def __init__(self, terms=None, lag=1, prefix="lag_", role="predictor", skip=False, id=None):
        self.terms = terms
        self.lag = lag
        self.prefix = prefix
        self.role = role
        self.skip = skip
        self.id = id

    def _check_params(self) -> None:
        validate_int_values(self.lag, "lag", positive=False)

    def _new_columns(self) -> List[str]:
        lags = validate_int_values(self.lag, "lag", positive=False)
        return [name for name, _, _ in lag_feature_names(self.columns_, lags, self.prefix)]

    def _bake(self, X: pd.DataFrame) -> pd.DataFrame:
        return augment_lags(X, self.columns_, self.lag, prefix=self.prefix)

    def tidy(self) -> pd.DataFrame:
        lags = validate_int_values(self.lag, "lag", positive=False)
        if self.trained:
            rows = [{"terms": name, "lag": lag} for name, _, lag in lag_feature_names(self.columns_, lags, self.prefix)]
        else:
            rows = [{"terms": t, "lag": lag} for t, lag in itertools.product(self._terms(), lags)]
        res = pd.DataFrame(rows, columns=["terms", "lag"])
        res["id"] = self.id
        return res


class StepDiff(TimeSeriesStep):
    """
    Разности выбранных колонок для каждой комбинации (лаг, порядок разности).

    Данные должны быть уже упорядочены по времени. Первые lag * difference
    значений каждой новой колонки - NaN.

    Example:
        >>> step = StepDiff(['close', 'volume'], lag=[1, 2, 3], difference=1)
        >>> step.fit_transform(df).columns[-6:]
        Index(['diff_1_1_close', 'diff_2_1_close', 'diff_3_1_close',
               'diff_1_1_volume', 'diff_2_1_volume', 'diff_3_1_volume'], dtype='object')
    """

    kind = "diff"
    title = "Differencing"

    def __init__(self, terms=None, lag=1, difference=1, log=False, prefix="diff_",
                 role="predictor", skip=False, id=None):
        self.terms = terms
        self.lag = lag
        self.difference = difference
        self.log = log
        self.prefix = prefix
        self.role = role
        self.skip = skip
        self.id = id

    def _check_params(self) -> None:
        validate_int_values(self.lag, "lag")
        validate_int_values(self.difference, "difference")

    def _grid(self):
        return diff_feature_names(
            self.columns_,
            validate_int_values(self.lag, "lag"),
            validate_int_values(self.difference, "difference"),
            self.prefix,
        )

    def _new_columns(self) -> List[str]:
        return [name for name, _, _, _ in self._grid()]

    def _bake(self, X: pd.DataFrame) -> pd.DataFrame:
        return augment_diffs(X, self.columns_, self.lag, self.difference, log=self.log, prefix=self.prefix)

    def tidy(self) -> pd.DataFrame:
        if self.trained:
            rows = [
                {"terms": name, "lag": lag, "diff": diff, "log": self.log}
                for name, _, lag, diff in self._grid()
            ]
        else:
            rows = [
                {"terms": t, "lag": lag, "diff": diff, "log": self.log}
                for t, lag, diff in itertools.product(
                    self._terms(),
                    validate_int_values(self.lag, "lag"),
                    validate_int_values(self.difference, "difference"),
                )
            ]
        res = pd.DataFrame(rows, columns=["terms", "lag", "diff", "log"])
        res["id"] = self.id
        return res


class StepSlidify(TimeSeriesStep):
    """
    Скользящий агрегат выбранных колонок.

    names=None - исходные колонки перезаписываются; иначе `names` задаёт
    новые колонки (по одной на выбранную колонку).
    """

    kind = "slidify"
    title = "Sliding apply"

    def __init__(self, terms=None, period=1, f="mean", align="center", partial=False, names=None,
                 f_args=(), f_kwargs=None, role="predictor", skip=False, id=None):
        self.terms = terms
        self.period = period
        self.f = f
        self.align = align
        self.partial = partial
        self.names = names
        self.f_args = f_args
        self.f_kwargs = f_kwargs
        self.role = role
        self.skip = skip
        self.id = id

    def _check_params(self) -> None:
        resolve_extents(self.period, self.align)
        resolve_summary_fn(self.f)

    def fit(self, X: pd.DataFrame, y: Any = None) -> "StepSlidify":
        super().fit(X, y)
        if self.names is not None and len(as_list(self.names)) != len(self.columns_):
            raise ValueError(
                f"Длина 'names' ({len(as_list(self.names))}) должна совпадать с числом выбранных колонок ({len(self.columns_)})"
            )
        return self

    def _new_columns(self) -> List[str]:
        return as_list(self.names)

    def _bake(self, X: pd.DataFrame) -> pd.DataFrame:
        f_kwargs: Dict[str, Any] = self.f_kwargs or {}
        if self.names is not None:
            return augment_slidify(
                X, self.columns_, self.period, self.f, *self.f_args,
                align=self.align, partial=self.partial, names=as_list(self.names), **f_kwargs,
            )

        out = X.copy()
        for col in self.columns_:
            out[col] = slidify_vec(
                X[col], self.f, *self.f_args,
                period=self.period, align=self.align, partial=self.partial, **f_kwargs,
            )
        return out

    def tidy(self) -> pd.DataFrame:
        align = self.align.value if isinstance(self.align, Alignment) else self.align
        f_name = self.f if isinstance(self.f, str) else getattr(self.f, "__name__", repr(self.f))
        res = pd.DataFrame(
            {
                "terms": self._terms(),
                "period": self.period,
                "f": f_name,
                "align": align,
                "partial": self.partial,
            },
            columns=["terms", "period", "f", "align", "partial"],
        )
        res["id"] = self.id
        return res
