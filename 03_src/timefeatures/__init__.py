"""
Feature Engineering для временных рядов.

Этот пакет содержит:
- rolling: скользящие окна с выравниванием center/left/right (slidify_vec, slidify)
- differencing: лаги и разности (lag_vec, diff_vec, diff_inv_vec)
- augment: массовое добавление признаков в DataFrame (по группам, параллельно)
- steps: шаги-трансформеры sklearn (StepLag, StepDiff, StepSlidify)
- recipe: рецепт из шагов (prep / bake / juice / tidy)
- pipeline: запуск рецепта по YAML-конфигурации
"""

from .rolling import (
    Alignment,
    ExtentPair,
    apply_partial_policy,
    resolve_alignment,
    resolve_extents,
    slide_apply,
    slidify,
    slidify_vec,
)
from .differencing import diff_inv_vec, diff_vec, lag_vec
from .augment import augment_diffs, augment_lags, augment_slidify
from .steps import StepDiff, StepLag, StepSlidify, TimeSeriesStep
from .recipe import Recipe
from .pipeline import RecipePipeline

__all__ = [
    'Alignment',
    'ExtentPair',
    'resolve_alignment',
    'resolve_extents',
    'slide_apply',
    'apply_partial_policy',
    'slidify_vec',
    'slidify',
    'lag_vec',
    'diff_vec',
    'diff_inv_vec',
    'augment_lags',
    'augment_diffs',
    'augment_slidify',
    'TimeSeriesStep',
    'StepLag',
    'StepDiff',
    'StepSlidify',
    'Recipe',
    'RecipePipeline',
]
