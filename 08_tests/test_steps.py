"""
Unit-тесты для шагов препроцессинга (sklearn-трансформеров).
"""

import sys
import pytest
import pandas as pd
import numpy as np
from pathlib import Path
from sklearn.base import clone
from sklearn.exceptions import NotFittedError
from sklearn.pipeline import Pipeline

# Добавляем путь к модулям
project_root = Path(__file__).parent.parent
sys.path.append(str(project_root / '03_src'))

from timefeatures import StepDiff, StepLag, StepSlidify


class TestDataGenerator:
    """Генератор тестовых данных для тестов."""

    @staticmethod
    def create_sample_series(n_periods=50, start_price=100.0):
        """Создает синтетический ряд close/volume с часовым индексом."""
        np.random.seed(42)
        dates = pd.date_range('2020-01-01', periods=n_periods, freq='h')
        returns = np.random.normal(0, 0.01, n_periods)
        close = start_price * np.cumprod(1 + returns)
        volume = np.random.randint(1000, 10000, n_periods).astype(float)
        return pd.DataFrame({'close': close, 'volume': volume, 'count': np.arange(n_periods)}, index=dates)


class TestStepDiff:
    """Тесты шага разностей."""

    def setup_method(self):
        self.df = TestDataGenerator.create_sample_series()

    def test_fit_selects_columns(self):
        step = StepDiff(['close', 'volume']).fit(self.df)
        assert step.columns_ == ['close', 'volume']
        assert step.trained

    def test_pattern_selectors(self):
        step = StepDiff('c*').fit(self.df)
        assert step.columns_ == ['close', 'count']

    def test_no_match(self):
        with pytest.raises(ValueError):
            StepDiff('price').fit(self.df)

    def test_generated_columns(self):
        result = StepDiff(['close', 'volume'], lag=[1, 2, 3], difference=1).fit_transform(self.df)
        expected = [
            'diff_1_1_close', 'diff_2_1_close', 'diff_3_1_close',
            'diff_1_1_volume', 'diff_2_1_volume', 'diff_3_1_volume',
        ]
        assert list(result.columns) == list(self.df.columns) + expected
        np.testing.assert_allclose(
            result['diff_2_1_close'].iloc[2:],
            (self.df['close'] - self.df['close'].shift(2)).iloc[2:],
        )
        assert result['diff_3_1_volume'].iloc[:3].isnull().all()

    def test_log_and_prefix(self):
        result = StepDiff('close', log=True, prefix='logret_').fit_transform(self.df)
        expected = np.log(self.df['close']).diff()
        np.testing.assert_allclose(result['logret_1_1_close'].iloc[1:], expected.iloc[1:])

    def test_integer_valued_floats_accepted(self):
        result = StepDiff('close', lag=[1.0, 2.0], difference=1.0).fit_transform(self.df)
        assert 'diff_2_1_close' in result.columns

    @pytest.mark.parametrize("params", [{'lag': 1.5}, {'difference': [1, 0.5]}, {'lag': 0}, {'lag': 'one'}])
    def test_invalid_parameters(self, params):
        with pytest.raises(ValueError):
            StepDiff('close', **params).fit(self.df)

    def test_invalid_parameters_checked_on_transform(self):
        step = StepDiff('close').fit(self.df)
        step.set_params(lag=2.5)
        with pytest.raises(ValueError):
            step.transform(self.df)

    def test_name_collision(self):
        df = self.df.copy()
        df['diff_1_1_close'] = 0.0
        with pytest.raises(ValueError):
            StepDiff('close').fit_transform(df)

    def test_transform_before_fit(self):
        with pytest.raises(NotFittedError):
            StepDiff('close').transform(self.df)

    def test_requires_dataframe(self):
        with pytest.raises(TypeError):
            StepDiff('close').fit(self.df['close'].to_numpy())

    def test_transform_new_data_uses_trained_columns(self):
        step = StepDiff('c*').fit(self.df[['close', 'volume']])
        new_data = self.df.tail(10)
        result = step.transform(new_data)
        assert 'diff_1_1_close' in result.columns
        assert 'diff_1_1_count' not in result.columns
        assert len(result) == 10

    def test_skip(self):
        step = StepDiff('close', skip=True)
        trained = step.fit_transform(self.df)
        assert 'diff_1_1_close' in trained.columns
        baked = step.transform(self.df.tail(5))
        assert list(baked.columns) == list(self.df.columns)

    def test_tidy(self):
        step = StepDiff(['close', 'volume'], lag=[1, 2], difference=1, id='diff_test')
        untrained = step.tidy()
        assert list(untrained.columns) == ['terms', 'lag', 'diff', 'log', 'id']
        assert list(untrained['terms']) == ['close', 'close', 'volume', 'volume']

        trained = step.fit(self.df).tidy()
        assert list(trained['terms']) == ['diff_1_1_close', 'diff_2_1_close', 'diff_1_1_volume', 'diff_2_1_volume']
        assert (trained['id'] == 'diff_test').all()

    def test_feature_names_out(self):
        step = StepDiff('close', lag=[1, 2]).fit(self.df)
        names = list(step.get_feature_names_out())
        assert names == ['close', 'volume', 'count', 'diff_1_1_close', 'diff_2_1_close']

    def test_describe(self):
        step = StepDiff(['close'])
        assert step.describe() == "Differencing on close"
        step.fit(self.df)
        assert step.describe() == "Differencing on close [trained]"

    def test_clone(self):
        step = StepDiff('close', lag=[1, 2], difference=2, log=True)
        cloned = clone(step)
        assert cloned.get_params() == step.get_params()
        assert not cloned.trained


class TestStepLag:
    """Тесты шага лагов."""

    def test_lags(self):
        df = TestDataGenerator.create_sample_series(10)
        result = StepLag('volume', lag=[1, 3]).fit_transform(df)
        np.testing.assert_allclose(result['lag_1_volume'].iloc[1:], df['volume'].iloc[:-1])
        assert result['lag_3_volume'].iloc[:3].isnull().all()

    def test_negative_lag_leads(self):
        """Отрицательный лаг - опережение, как в lag_vec."""
        df = TestDataGenerator.create_sample_series(10)
        step = StepLag('volume', lag=[-1, 1])
        result = step.fit_transform(df)
        np.testing.assert_allclose(result['lag_-1_volume'].iloc[:-1], df['volume'].iloc[1:])
        assert np.isnan(result['lag_-1_volume'].iloc[-1])
        assert list(step.get_feature_names_out())[-2:] == ['lag_-1_volume', 'lag_1_volume']
        assert list(step.tidy()['lag']) == [-1, 1]

    def test_tidy(self):
        df = TestDataGenerator.create_sample_series(10)
        tidy = StepLag('volume', lag=[1, 3], id='lag_x').fit(df).tidy()
        assert list(tidy['terms']) == ['lag_1_volume', 'lag_3_volume']


class TestStepSlidify:
    """Тесты шага скользящих агрегатов."""

    def setup_method(self):
        self.df = TestDataGenerator.create_sample_series(30)

    def test_overwrite_columns(self):
        step = StepSlidify('close', period=3, f='mean', align='right')
        result = step.fit_transform(self.df)
        assert list(result.columns) == list(self.df.columns)
        expected = self.df['close'].rolling(3).mean()
        np.testing.assert_allclose(result['close'], expected)

    def test_named_columns(self):
        step = StepSlidify(['close', 'volume'], period=5, f=np.median, align='center', partial=True,
                           names=['close_med_5', 'volume_med_5'])
        result = step.fit_transform(self.df)
        assert {'close_med_5', 'volume_med_5'}.issubset(result.columns)
        assert not result['close_med_5'].isnull().any()
        assert list(step.get_feature_names_out())[-2:] == ['close_med_5', 'volume_med_5']

    def test_function_arguments(self):
        step = StepSlidify('close', period=4, f=np.quantile, f_args=(0.9,), align='right', names=['close_q90'])
        result = step.fit_transform(self.df)
        expected = self.df['close'].rolling(4).apply(lambda w: np.quantile(w, 0.9), raw=True)
        np.testing.assert_allclose(result['close_q90'], expected)

    def test_names_length_mismatch(self):
        with pytest.raises(ValueError):
            StepSlidify(['close', 'volume'], period=3, names=['only_one']).fit(self.df)

    def test_invalid_alignment(self):
        with pytest.raises(ValueError):
            StepSlidify('close', period=3, align='middle').fit(self.df)

    def test_tidy(self):
        tidy = StepSlidify('close', period=3, f='mean', align='right', id='slidify_x').fit(self.df).tidy()
        assert list(tidy.columns) == ['terms', 'period', 'f', 'align', 'partial', 'id']
        assert tidy.loc[0, 'f'] == 'mean'
        assert tidy.loc[0, 'align'] == 'right'


class TestSklearnPipeline:
    """Шаги работают внутри sklearn Pipeline."""

    def test_pipeline_fit_transform(self):
        df = TestDataGenerator.create_sample_series(40)
        pipe = Pipeline([
            ('diff', StepDiff('close', lag=[1, 2])),
            ('ma', StepSlidify('diff_1_1_close', period=3, f='nanmean', align='right', names=['diff_ma_3'])),
        ])
        train = pipe.fit_transform(df.iloc[:30])
        test = pipe.transform(df.iloc[30:])

        assert 'diff_ma_3' in train.columns
        assert len(test) == 10
        assert list(test.columns) == list(train.columns)
