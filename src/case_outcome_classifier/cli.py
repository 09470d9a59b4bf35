"""Command-line interface for the case outcome classifier.

Provides ``evaluate``, ``predict``, ``cross-validate`` and ``top-terms``
commands with rich terminal output using the ``click`` and ``rich``
libraries.

Usage::

    case-outcome evaluate arrests.csv --text-field OUTCOME --label-field GUILTY
    case-outcome predict training.csv unlabeled.csv --save results.csv
    case-outcome top-terms arrests.csv --top-n 15
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import PipelineConfig
from .dataset import DatasetSchema, check_format, load_records, save_records
from .errors import CaseOutcomeError
from .estimator import CLASSES
from .evaluation import (
    ClassificationMetrics,
    cross_validate,
    evaluate,
    predict_unlabeled,
)
from .models import RecordFailure, Verdict

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _dataset_options(func):
    """Options shared by every command that reads a dataset."""
    options = [
        click.option("--text-field", default="OUTCOME", show_default=True,
                     help="Column holding the outcome narrative."),
        click.option("--label-field", default="GUILTY", show_default=True,
                     help="Column holding 0, 1 or an unlabeled marker."),
        click.option("--id-field", default=None,
                     help="Column used as record identifier (default: row index)."),
        click.option("--min-doc-freq", type=int, default=None,
                     help="Minimum document frequency for a term [env or 5]."),
        click.option("--verbose", "-v", is_flag=True, help="Show debug logging."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


_seed_option = click.option("--seed", type=int, default=None,
                            help="Random seed for shuffling [env or 42].")

_log_space_option = click.option("--log-space", is_flag=True,
                                 help="Score in log space instead of direct products.")


def _fail(error: Exception) -> None:
    """Report a failed run and exit without writing output."""
    if isinstance(error, CaseOutcomeError):
        console.print(f"[bold red]{type(error).__name__}:[/] {escape(str(error))}")
        if error.count:
            shown = ", ".join(str(r) for r in error.record_ids[:10])
            more = f" (+{error.count - 10} more)" if error.count > 10 else ""
            console.print(f"  Affected records ({error.count}): {shown}{more}")
    else:
        console.print(f"[bold red]Error:[/] {escape(str(error))}")
    sys.exit(1)


@click.group()
@click.version_option(package_name="case-outcome-classifier")
def main() -> None:
    """⚖️ Case Outcome Classifier: Bernoulli Naive Bayes guilt labeling.

    Train on labeled outcome narratives, evaluate on a held-out split, and
    label unlabeled records.
    """
    pass


@main.command("evaluate")
@click.argument("data", type=click.Path(exists=True, path_type=Path))
@_dataset_options
@_seed_option
@_log_space_option
@click.option("--train-fraction", type=float, default=None,
              help="Share of labeled rows used for training [env or 0.6].")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
def evaluate_cmd(
    data: Path,
    text_field: str,
    label_field: str,
    id_field: str | None,
    min_doc_freq: int | None,
    verbose: bool,
    seed: int | None,
    log_space: bool,
    train_fraction: float | None,
    output: str,
) -> None:
    """Train on a seeded split of DATA and report held-out accuracy.

    Example: case-outcome evaluate arrests.csv --train-fraction 0.6
    """
    _configure_logging(verbose)
    schema = DatasetSchema(text_field=text_field, label_field=label_field, id_field=id_field)

    try:
        config = PipelineConfig.from_env(
            min_doc_freq=min_doc_freq,
            train_fraction=train_fraction,
            random_seed=seed,
            log_space=log_space or None,
        )
        with console.status("[bold blue]Training and evaluating...", spinner="dots"):
            result = evaluate(load_records(data), schema, config)
    except (ValueError, OSError) as e:
        _fail(e)
        return

    if output == "json":
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
        return

    console.print()
    console.print(Panel(
        f"[bold]{data.name}[/]\n"
        f"Train: {len(result.train_ids)} | Test: {len(result.test_ids)} | "
        f"Vocabulary: {len(result.stats.terms) if result.stats else 0} terms | "
        f"Seed: {config.random_seed}",
        title="⚖️ Held-out Evaluation",
        border_style="blue",
    ))
    _render_metrics(result.metrics)
    _render_failures(result.failures)


@main.command("predict")
@click.argument("train", type=click.Path(exists=True, path_type=Path))
@click.argument("unlabeled", type=click.Path(exists=True, path_type=Path))
@_dataset_options
@_log_space_option
@click.option("--save", "-s", type=click.Path(path_type=Path), default=None,
              help="Write the labeled records (CSV, JSON or JSONL).")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
def predict_cmd(
    train: Path,
    unlabeled: Path,
    text_field: str,
    label_field: str,
    id_field: str | None,
    min_doc_freq: int | None,
    verbose: bool,
    log_space: bool,
    save: Path | None,
    output: str,
) -> None:
    """Train on TRAIN and label every unlabeled record in UNLABELED.

    Example: case-outcome predict training.csv test.csv --save results.csv
    """
    _configure_logging(verbose)
    schema = DatasetSchema(text_field=text_field, label_field=label_field, id_field=id_field)

    try:
        if save:
            check_format(save)
        config = PipelineConfig.from_env(
            min_doc_freq=min_doc_freq, log_space=log_space or None
        )
        with console.status("[bold blue]Training and labeling...", spinner="dots"):
            result = predict_unlabeled(
                load_records(train), load_records(unlabeled), schema, config
            )
    except (ValueError, OSError) as e:
        _fail(e)
        return

    if output == "json":
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        counts = result.verdict_counts
        console.print()
        console.print(Panel(
            f"[bold]{unlabeled.name}[/]\n"
            f"Labeled: {len(result.predictions)} | "
            f"Not guilty: {counts[Verdict.NOT_GUILTY]} | "
            f"Guilty: {counts[Verdict.GUILTY]} | "
            f"Failed: {len(result.failures)}",
            title="⚖️ Predictions",
            border_style="blue",
        ))
        _render_failures(result.failures)

    if save:
        try:
            save_records(result.records, save)
        except (ValueError, OSError) as e:
            _fail(e)
            return
        console.print(f"\n[dim]Labeled records saved to {save}[/]")


@main.command("cross-validate")
@click.argument("data", type=click.Path(exists=True, path_type=Path))
@_dataset_options
@_seed_option
@_log_space_option
@click.option("--folds", "-k", type=int, default=5, show_default=True,
              help="Number of stratified folds.")
def cross_validate_cmd(
    data: Path,
    text_field: str,
    label_field: str,
    id_field: str | None,
    min_doc_freq: int | None,
    verbose: bool,
    seed: int | None,
    log_space: bool,
    folds: int,
) -> None:
    """Run stratified k-fold cross-validation on the labeled rows of DATA."""
    _configure_logging(verbose)
    schema = DatasetSchema(text_field=text_field, label_field=label_field, id_field=id_field)

    try:
        config = PipelineConfig.from_env(
            min_doc_freq=min_doc_freq, random_seed=seed, log_space=log_space or None
        )
        with console.status(f"[bold blue]Running {folds}-fold cross-validation...",
                            spinner="dots"):
            fold_metrics = cross_validate(load_records(data), schema, config, k=folds)
    except (ValueError, OSError) as e:
        _fail(e)
        return

    table = Table(title=f"{folds}-fold Cross-Validation: {data.name}")
    table.add_column("Fold", justify="right", width=6)
    table.add_column("Accuracy", justify="right")
    table.add_column("Macro F1", justify="right")
    table.add_column("Failed", justify="right")
    for i, m in enumerate(fold_metrics, 1):
        table.add_row(str(i), f"{m.accuracy:.2%}", f"{m.macro_f1:.4f}", str(len(m.failures)))
    mean_acc = sum(m.accuracy for m in fold_metrics) / len(fold_metrics)
    table.add_row("mean", f"[bold]{mean_acc:.2%}[/]", "", "")
    console.print(table)
    _render_failures([f for m in fold_metrics for f in m.failures])


@main.command("top-terms")
@click.argument("data", type=click.Path(exists=True, path_type=Path))
@_dataset_options
@click.option("--top-n", "-n", type=int, default=15, show_default=True,
              help="Terms to show per class.")
def top_terms_cmd(
    data: Path,
    text_field: str,
    label_field: str,
    id_field: str | None,
    min_doc_freq: int | None,
    verbose: bool,
    top_n: int,
) -> None:
    """Show the terms that most separate the two verdicts in DATA."""
    from .classifier import BernoulliNaiveBayes
    from .dataset import split_labeled, to_documents

    _configure_logging(verbose)
    schema = DatasetSchema(text_field=text_field, label_field=label_field, id_field=id_field)

    try:
        config = PipelineConfig.from_env(min_doc_freq=min_doc_freq)
        labeled, _ = split_labeled(to_documents(load_records(data), schema))
        model = BernoulliNaiveBayes(config.min_doc_freq, config.normalizer())
        model.train(
            [d.text for d in labeled],
            [d.label for d in labeled],
            [d.record_id for d in labeled],
        )
    except (ValueError, OSError) as e:
        _fail(e)
        return

    for verdict in CLASSES:
        table = Table(title=f"Most informative terms: {verdict.display_name}")
        table.add_column("#", justify="right", width=4)
        table.add_column("Term", style="cyan")
        table.add_column("Log-likelihood ratio", justify="right")
        for i, (term, ratio) in enumerate(model.most_informative_terms(verdict, top_n), 1):
            table.add_row(str(i), term, f"{ratio:+.4f}")
        console.print(table)
        console.print()


# ------------------------------------------------------------------
# Rich rendering helpers
# ------------------------------------------------------------------


def _render_metrics(metrics: ClassificationMetrics) -> None:
    """Render accuracy, per-class scores and the confusion matrix."""
    acc = metrics.accuracy
    if acc >= 0.8:
        acc_style = "bold green"
    elif acc >= 0.6:
        acc_style = "bold yellow"
    else:
        acc_style = "bold red"
    console.print(f"Accuracy: [{acc_style}]{acc:.2%}[/]   Macro F1: {metrics.macro_f1:.4f}")
    console.print()

    table = Table(title="Per-class Metrics")
    table.add_column("Class", style="cyan")
    table.add_column("Precision", justify="right")
    table.add_column("Recall", justify="right")
    table.add_column("F1", justify="right")
    table.add_column("Support", justify="right")
    for cls in CLASSES:
        m = metrics.per_class[cls]
        table.add_row(
            cls.display_name,
            f"{m['precision']:.4f}",
            f"{m['recall']:.4f}",
            f"{m['f1']:.4f}",
            str(metrics.support.get(cls, 0)),
        )
    console.print(table)

    cm = Table(title="Confusion Matrix (rows: actual, columns: predicted)")
    cm.add_column("")
    for cls in CLASSES:
        cm.add_column(cls.display_name, justify="right")
    for true in CLASSES:
        cm.add_row(true.display_name, *(str(metrics.confusion_matrix[true][p]) for p in CLASSES))
    console.print(cm)
    console.print()


def _render_failures(failures: list[RecordFailure]) -> None:
    if not failures:
        return
    console.print(f"[bold yellow]{len(failures)} record(s) could not be classified[/]")
    for failure in failures[:20]:
        console.print(f"  • {failure.record_id}: {escape(failure.error)}")
    if len(failures) > 20:
        console.print(f"  ... ({len(failures) - 20} more)")
    console.print()


if __name__ == "__main__":
    main()
