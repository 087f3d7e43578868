"""Запуск пайплайна признаков из командной строки.

Читает конфигурацию (по умолчанию `04_configs/feature_engineering.yml`),
строит рецепт, сохраняет результат в Parquet и, при необходимости, строит
график исходной колонки вместе с созданными из неё признаками.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import matplotlib.pyplot as plt
import pandas as pd

from .pipeline import RecipePipeline


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Генерация признаков временных рядов (лаги, разности, скользящие окна) по YAML-рецепту."
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Путь к YAML-конфигурации. По умолчанию 04_configs/feature_engineering.yml.",
    )
    parser.add_argument(
        "--profile",
        default="full",
        help="Профиль конфигурации (секция profiles.<name>).",
    )
    parser.add_argument(
        "--input-path",
        type=Path,
        default=None,
        help="Путь к исходному CSV/Parquet. По умолчанию pipeline_settings.input_file.",
    )
    parser.add_argument(
        "--output-path",
        type=Path,
        default=None,
        help="Путь сохранения результата в формате Parquet.",
    )
    parser.add_argument(
        "--plot-column",
        default=None,
        help="Исходная колонка для графика: рисуется вместе с признаками, в имени которых она встречается.",
    )
    parser.add_argument(
        "--plot-length",
        type=int,
        default=120,
        help="Количество последних периодов на графике.",
    )
    parser.add_argument(
        "--plot-output",
        type=Path,
        default=None,
        help=(
            "Файл для сохранения графика (PNG). По умолчанию сохраняется рядом с"
            " выходным датасетом с суффиксом `_preview.png`."
        ),
    )
    parser.add_argument(
        "--show-plot",
        action="store_true",
        help="Показывать график интерактивно (если поддерживается окружением).",
    )

    return parser.parse_args(argv)


def related_columns(df: pd.DataFrame, column: str) -> List[str]:
    """Исходная колонка и созданные из неё признаки (по вхождению имени)."""
    return [column] + [c for c in df.columns if c != column and isinstance(c, str) and column in c]


def plot_tail(
    df: pd.DataFrame,
    column: str,
    length: int,
    output_path: Optional[Path],
    show_plot: bool,
) -> None:
    if df.empty:
        print("[WARN] Датасет пуст: график не построен.")
        return
    if column not in df.columns:
        print(f"[WARN] Колонка '{column}' отсутствует: график не построен.")
        return

    tail_df = df[related_columns(df, column)].tail(length)

    plt.style.use("ggplot")
    fig, ax = plt.subplots(figsize=(10, 4))
    for col in tail_df.columns:
        ax.plot(tail_df.index, tail_df[col], label=col, linewidth=2 if col == column else 1)
    ax.set_ylabel(column)
    ax.set_title(f"Последние {len(tail_df)} периодов: {column}")
    ax.legend(loc="best", fontsize="small")
    fig.autofmt_xdate()

    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=150, bbox_inches="tight")
        print(f"[INFO] График сохранён в {output_path}")

    if show_plot:
        plt.show()
    plt.close(fig)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)

    pipeline = RecipePipeline(
        config_path=str(args.config) if args.config is not None else None,
        profile=args.profile,
    )
    df, stats = pipeline.run_full_pipeline(
        input_path=str(args.input_path) if args.input_path is not None else None,
        output_path=str(args.output_path) if args.output_path is not None else None,
    )

    print(
        "[INFO] Создано признаков: "
        f"{stats['created_features']} (всего колонок: {stats['total_columns']})."
    )

    if args.plot_column:
        plot_path = args.plot_output
        if plot_path is None:
            output = Path(stats['output_path'])
            plot_path = output.with_name(f"{output.stem}_preview.png")
        plot_tail(df, args.plot_column, args.plot_length, plot_path, args.show_plot)

    return 0


if __name__ == "__main__":
    sys.exit(main())
