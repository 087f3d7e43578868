"""
Рецепт - упорядоченный список шагов препроцессинга.

prep() обучает шаги по очереди (каждый на выходе предыдущего),
bake() применяет обученные шаги к новым данным, juice() возвращает
преобразованные обучающие данные. Рецепт можно собрать из конфигурации
(список словарей с ключом `step`) и превратить в sklearn Pipeline.
"""

from __future__ import annotations

import logging
import random
import string
from typing import Any, Dict, List, Optional

import pandas as pd
from sklearn.pipeline import Pipeline

from .steps import StepDiff, StepLag, StepSlidify, TimeSeriesStep

__all__ = ["Recipe", "STEP_REGISTRY", "rand_id"]

logger = logging.getLogger(__name__)

STEP_REGISTRY: Dict[str, type] = {cls.kind: cls for cls in (StepLag, StepDiff, StepSlidify)}


def rand_id(prefix: str) -> str:
    """Случайный идентификатор шага вида 'diff_AbCdE'."""
    return f"{prefix}_{''.join(random.choices(string.ascii_letters, k=5))}"


class Recipe:
    """
    Последовательность шагов для одного набора данных.

    Example:
        >>> rec = (Recipe()
        ...        .step_diff('close', lag=[1, 2], difference=1)
        ...        .step_slidify('close', period=24, f='mean', align='right', names=['close_ma_24']))
        >>> rec.prep(train_df)
        >>> test_features = rec.bake(test_df)
    """

    def __init__(self, steps: Optional[List[TimeSeriesStep]] = None):
        self.steps: List[TimeSeriesStep] = []
        self.prepped = False
        self.template_columns: List[str] = []
        self._training: Optional[pd.DataFrame] = None
        for step in steps or []:
            self.add_step(step)

    def __len__(self) -> int:
        return len(self.steps)

    def __repr__(self) -> str:
        lines = [f"Recipe with {len(self.steps)} step(s):"]
        for i, step in enumerate(self.steps, start=1):
            lines.append(f"  {i}. {step.describe()}")
        return "\n".join(lines)

    def add_step(self, step: TimeSeriesStep) -> "Recipe":
        if not isinstance(step, TimeSeriesStep):
            raise TypeError(f"Ожидается шаг TimeSeriesStep, получено: {type(step).__name__}")
        if not step.id:
            step.set_params(id=rand_id(step.kind))
        if any(s.id == step.id for s in self.steps):
            raise ValueError(f"Шаг с id '{step.id}' уже есть в рецепте")
        self.steps.append(step)
        # Новый шаг требует повторного prep
        self.prepped = False
        return self

    def step_lag(self, *terms: str, **params: Any) -> "Recipe":
        return self.add_step(StepLag(list(terms), **params))

    def step_diff(self, *terms: str, **params: Any) -> "Recipe":
        return self.add_step(StepDiff(list(terms), **params))

    def step_slidify(self, *terms: str, **params: Any) -> "Recipe":
        return self.add_step(StepSlidify(list(terms), **params))

    @classmethod
    def from_config(cls, steps_config: Optional[List[Dict[str, Any]]]) -> "Recipe":
        """
        Собирает рецепт из списка словарей.

        Каждый элемент: {'step': 'diff' | 'lag' | 'slidify', <параметры шага>}.
        Ключ 'columns' - синоним 'terms'.
        """
        recipe = cls()
        for i, item in enumerate(steps_config or [], start=1):
            params = dict(item or {})
            kind = params.pop("step", None)
            step_cls = STEP_REGISTRY.get(kind)
            if step_cls is None:
                raise ValueError(
                    f"Неизвестный тип шага #{i}: '{kind}'. Доступные: {sorted(STEP_REGISTRY)}"
                )
            if "columns" in params:
                params["terms"] = params.pop("columns")
            recipe.add_step(step_cls(**params))
        return recipe

    def prep(self, training: pd.DataFrame, retain: bool = True) -> "Recipe":
        """Обучает шаги по очереди; при retain=True сохраняет результат для juice()."""
        data = training
        self.template_columns = list(training.columns)
        for i, step in enumerate(self.steps, start=1):
            data = step.fit_transform(data)
            logger.info(f"Prepped step {i}/{len(self.steps)}: {step.describe()}")
        self._training = data if retain else None
        self.prepped = True
        return self

    def bake(self, new_data: Optional[pd.DataFrame] = None) -> pd.DataFrame:
        """Применяет обученные шаги. Без аргумента возвращает обучающие данные (juice)."""
        if not self.prepped:
            raise RuntimeError("Рецепт не обучен: вызовите prep() перед bake()")
        if new_data is None:
            if self._training is None:
                raise RuntimeError("Обучающие данные не сохранены: используйте prep(..., retain=True)")
            return self._training.copy()

        data = new_data
        for step in self.steps:
            data = step.transform(data)
        return data

    def juice(self) -> pd.DataFrame:
        return self.bake(None)

    def tidy(self, number: Optional[int] = None) -> pd.DataFrame:
        """
        Без аргумента - обзор шагов (number, operation, type, trained, skip, id),
        с номером шага (с 1) - описание этого шага.
        """
        if number is None:
            rows = [
                {
                    "number": i,
                    "operation": "step",
                    "type": step.kind,
                    "trained": step.trained,
                    "skip": step.skip,
                    "id": step.id,
                }
                for i, step in enumerate(self.steps, start=1)
            ]
            return pd.DataFrame(rows, columns=["number", "operation", "type", "trained", "skip", "id"])

        if not 1 <= number <= len(self.steps):
            raise ValueError(f"Номер шага должен быть от 1 до {len(self.steps)}, получено: {number}")
        return self.steps[number - 1].tidy()

    def summary(self) -> pd.DataFrame:
        """Колонки обученного рецепта: исходные (source='original') и созданные шагами ('derived')."""
        if not self.prepped:
            raise RuntimeError("Рецепт не обучен: вызовите prep() перед summary()")
        roles = {}
        for step in self.steps:
            for col in step._new_columns():
                roles[col] = step.role

        columns = list(self.template_columns)
        for col in roles:
            if col not in columns:
                columns.append(col)
        rows = [
            {
                "variable": col,
                "role": roles.get(col),
                "source": "derived" if col in roles else "original",
            }
            for col in columns
        ]
        return pd.DataFrame(rows, columns=["variable", "role", "source"])

    def to_pipeline(self) -> Pipeline:
        """sklearn Pipeline из тех же объектов шагов (обученных, если был prep)."""
        if not self.steps:
            raise ValueError("Рецепт не содержит шагов")
        return Pipeline([(step.id, step) for step in self.steps])
