"""
Главный пайплайн генерации признаков временных рядов.
Обеспечивает:
- Загрузку конфигурации (YAML) с профилями
- Загрузку и валидацию данных (CSV/Parquet)
- Сборку рецепта из секции `recipe.steps` и его применение
- Сохранение результатов в Parquet
- Детальное логирование процесса
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import pandas as pd
import yaml

from .recipe import Recipe

LOGGER_NAME = "TimeFeatures"


class RecipePipeline:
    """
    Главный класс для создания признаков по конфигурации.

    Загружает конфигурацию, применяет профиль, строит рецепт,
    валидирует данные и сохраняет результаты.
    """

    def __init__(self, config_path: Optional[str] = None, profile: str = "full"):
        """
        Инициализация пайплайна.
        """
        self.profile = profile
        self.config = self._load_config(config_path)
        self.logger = self._setup_logging()
        self.recipe: Optional[Recipe] = None

        # Статистика выполнения
        self.stats = {
            'original_columns': 0,
            'created_features': 0,
            'total_columns': 0,
            'processing_time': 0,
            'data_shape': (0, 0)
        }

    def _load_config(self, config_path: Optional[str] = None) -> Dict:
        """Загружает конфигурацию из YAML файла."""
        if config_path is None:
            config_path = self._get_project_root() / "04_configs" / "feature_engineering.yml"

        try:
            with open(config_path, 'r', encoding='utf-8') as file:
                config = yaml.safe_load(file) or {}
        except FileNotFoundError:
            logging.getLogger(LOGGER_NAME).warning(
                f"Config file not found at {config_path}. Using default configuration."
            )
            return {}

        # Применяем профиль: секции профиля обновляют одноимённые секции конфигурации
        profile_config = (config.get('profiles') or {}).get(self.profile) or {}
        for section, values in profile_config.items():
            if isinstance(values, dict) and isinstance(config.get(section), dict):
                config[section].update(values)
            else:
                config[section] = values
        return config

    def _get_project_root(self) -> Path:
        """
        Возвращает корневую папку проекта.

        Для установленного пакета (нет 04_configs рядом с исходниками) - текущая папка.
        """
        root = Path(__file__).resolve().parents[2]
        if (root / "04_configs").is_dir():
            return root
        return Path.cwd()

    def _resolve_to_project_root(self, path_str: str) -> Path:
        """Преобразует относительный путь в абсолютный."""
        p = Path(path_str)
        if p.is_absolute():
            return p
        return self._get_project_root() / p

    def _slugify(self, text: str) -> str:
        """Простая нормализация строки."""
        text = (text or '').strip().lower()
        text = re.sub(r"[^a-z0-9]+", "_", text, flags=re.IGNORECASE)
        text = re.sub(r"_+", "_", text)
        return text.strip('_')

    def _settings(self) -> Dict[str, Any]:
        return self.config.get('pipeline_settings') or {}

    def _setup_logging(self) -> logging.Logger:
        """Настраивает логирование."""
        logger = logging.getLogger(LOGGER_NAME)
        if not logger.handlers:
            log_level = (self._settings().get('logging') or {}).get('level', 'INFO')
            logger.setLevel(getattr(logging, str(log_level).upper(), logging.INFO))
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.INFO)
            formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s', datefmt='%Y-%m-%d %H:%M:%S')
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)
        return logger

    def load_data(self, file_path: Optional[str] = None) -> pd.DataFrame:
        """Загружает и валидирует исходные данные."""
        if file_path is None:
            file_path = self._settings().get('input_file')
        if not file_path:
            raise ValueError("Не задан входной файл: передайте путь или укажите pipeline_settings.input_file")

        resolved_path = self._resolve_to_project_root(str(file_path))
        self.logger.info(f"Loading data from: {resolved_path}")
        if not resolved_path.exists():
            raise FileNotFoundError(f"Не найден входной файл: {resolved_path}")

        if resolved_path.suffix.lower() in {".parquet", ".pq"}:
            df = pd.read_parquet(resolved_path)
        else:
            df = pd.read_csv(resolved_path)
        self.logger.info(f"Data loaded. Shape: {df.shape}")

        df = self._validate_and_prepare_data(df)
        self.stats['original_columns'] = len(df.columns)
        self.stats['data_shape'] = df.shape
        return df

    def _validate_and_prepare_data(self, df: pd.DataFrame) -> pd.DataFrame:
        """Валидирует и подготавливает данные."""
        self.logger.info("Validating data...")
        settings = self._settings()
        time_column = settings.get('time_column')

        if time_column:
            if time_column not in df.columns:
                raise KeyError(f"В датасете отсутствует столбец '{time_column}'.")
            df = df.copy()
            df[time_column] = pd.to_datetime(df[time_column])
            df = df.set_index(time_column)

        validation_config = settings.get('validation') or {}
        if validation_config.get('check_duplicates', True) and isinstance(df.index, pd.DatetimeIndex):
            duplicated = df.index.duplicated(keep='first')
            if duplicated.any():
                self.logger.warning(f"Dropping {int(duplicated.sum())} duplicated timestamps")
                df = df[~duplicated]

        if validation_config.get('check_sorting', True) and isinstance(df.index, pd.DatetimeIndex):
            if not df.index.is_monotonic_increasing:
                self.logger.info("Index is not sorted. Sorting by time.")
                df = df.sort_index()

        return df

    def build_recipe(self) -> Recipe:
        """Собирает рецепт из секции `recipe.steps`."""
        steps_config = (self.config.get('recipe') or {}).get('steps') or []
        recipe = Recipe.from_config(steps_config)
        self.logger.info(f"Recipe built with {len(recipe)} step(s).")
        return recipe

    def create_features(self, df: pd.DataFrame) -> pd.DataFrame:
        """Обучает рецепт на df и возвращает df с признаками."""
        self.recipe = self.build_recipe()
        result = self.recipe.prep(df).juice()

        self.stats['created_features'] = len(result.columns) - len(df.columns)
        self.stats['total_columns'] = len(result.columns)
        self.logger.info(
            f"Features created: {self.stats['created_features']} | Total columns: {self.stats['total_columns']}"
        )
        return result

    def save_results(self, df: pd.DataFrame, output_path: Optional[str] = None) -> str:
        """Сохраняет результаты в формате Parquet."""
        self.logger.info("Saving results...")
        settings = self._settings()

        base_output = output_path or settings.get('output_file')
        if not base_output:
            ds_name = Path(str(settings.get('input_file') or 'dataset')).stem
            base_output = f"01_data/processed/{self._slugify(ds_name)}__features.parquet"

        resolved_output = self._resolve_to_project_root(str(base_output))
        resolved_output.parent.mkdir(parents=True, exist_ok=True)

        if settings.get('cast_float32', False):
            # Кастинг float64 -> float32 для экономии памяти перед сохранением
            float_cols = df.select_dtypes(include=['float64']).columns
            if len(float_cols) > 0:
                self.logger.info(f"Casting {len(float_cols)} columns to float32 for storage optimization.")
                df = df.copy()
                df[float_cols] = df[float_cols].astype('float32')

        parquet_settings = settings.get('parquet_settings') or {}
        df.to_parquet(
            str(resolved_output),
            engine=parquet_settings.get('engine', 'pyarrow'),
            compression=parquet_settings.get('compression', 'snappy'),
            index=parquet_settings.get('index', True)
        )
        self.logger.info(f"Saved to: {resolved_output}")
        return str(resolved_output)

    def run_full_pipeline(self, input_path: Optional[str] = None, output_path: Optional[str] = None,
                          save: bool = True) -> Tuple[pd.DataFrame, Dict]:
        """Запускает полный пайплайн."""
        self.logger.info("STARTING TIME SERIES FEATURE PIPELINE")
        start_time = pd.Timestamp.now()

        try:
            df = self.load_data(input_path)
            df_with_features = self.create_features(df)

            self.stats['processing_time'] = (pd.Timestamp.now() - start_time).total_seconds()
            self.stats['data_shape'] = df_with_features.shape

            if save:
                self.stats['output_path'] = self.save_results(df_with_features, output_path)

            self.logger.info("PIPELINE COMPLETED SUCCESSFULLY!")
            return df_with_features, self.stats

        except Exception as e:
            self.logger.error(f"Pipeline failed: {e}", exc_info=True)
            raise
