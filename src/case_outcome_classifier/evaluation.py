"""Held-out evaluation, production prediction and cross-validation.

Evaluation shuffles the labeled rows with a seeded ``random.Random``, cuts
them at ``round(train_fraction * n)``, trains on the head and scores the
tail. Production prediction runs the same pipeline on caller-supplied
labeled and unlabeled sets. Both validate the whole dataset up front and
abort on the first failed check; only per-record classification problems
are isolated.
"""

from __future__ import annotations

import logging
import random
from collections import Counter, defaultdict
from collections.abc import Hashable, Sequence
from dataclasses import dataclass, field
from typing import Optional

from .classifier import BernoulliNaiveBayes
from .config import PipelineConfig
from .dataset import DatasetSchema, Record, apply_predictions, split_labeled, to_documents
from .errors import EmptyClassError, InvalidLabelError
from .estimator import CLASSES, ClassStatistics
from .models import ClassificationResult, Document, RecordFailure, Verdict

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Evaluation Metrics
# ---------------------------------------------------------------------------


@dataclass
class ClassificationMetrics:
    """Evaluation metrics for a binary classification result.

    Attributes:
        accuracy: Overall accuracy.
        per_class: Per-class precision, recall, F1 scores.
        macro_f1: Unweighted mean F1 across both classes.
        confusion_matrix: ``confusion_matrix[true][predicted]`` counts.
        support: Per-class sample counts in the true labels.
        failures: Records left out of the scoring because they could not
            be classified.
    """

    accuracy: float = 0.0
    per_class: dict[Verdict, dict[str, float]] = field(default_factory=dict)
    macro_f1: float = 0.0
    confusion_matrix: dict[Verdict, dict[Verdict, int]] = field(default_factory=dict)
    support: dict[Verdict, int] = field(default_factory=dict)
    failures: list[RecordFailure] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "accuracy": round(self.accuracy, 4),
            "macro_f1": round(self.macro_f1, 4),
            "per_class": {
                str(int(cls)): {k: round(v, 4) for k, v in metrics.items()}
                for cls, metrics in self.per_class.items()
            },
            "confusion_matrix": {
                str(int(t)): {str(int(p)): n for p, n in row.items()}
                for t, row in self.confusion_matrix.items()
            },
            "support": {str(int(c)): n for c, n in self.support.items()},
            "failed": len(self.failures),
        }

    def summary(self) -> str:
        """Human-readable summary of metrics."""
        lines = [
            f"Accuracy: {self.accuracy:.2%}",
            f"Macro F1: {self.macro_f1:.4f}",
            "",
            f"{'Class':<14} {'Precision':>10} {'Recall':>10} {'F1':>10} {'Support':>10}",
            "-" * 56,
        ]
        for cls in CLASSES:
            m = self.per_class[cls]
            s = self.support.get(cls, 0)
            lines.append(
                f"{cls.display_name:<14} {m['precision']:>10.4f} {m['recall']:>10.4f} "
                f"{m['f1']:>10.4f} {s:>10}"
            )
        return "\n".join(lines)


def compute_metrics(
    y_true: Sequence[Verdict],
    y_pred: Sequence[Verdict],
) -> ClassificationMetrics:
    """Compute accuracy, per-class precision/recall/F1 and the confusion matrix."""
    if len(y_true) != len(y_pred):
        raise ValueError("y_true and y_pred must have the same length")

    n = len(y_true)
    cm = {t: {p: 0 for p in CLASSES} for t in CLASSES}
    for true, pred in zip(y_true, y_pred):
        cm[Verdict(true)][Verdict(pred)] += 1

    correct = sum(cm[c][c] for c in CLASSES)
    accuracy = correct / n if n > 0 else 0.0

    per_class: dict[Verdict, dict[str, float]] = {}
    for cls in CLASSES:
        other = Verdict(1 - cls)
        tp = cm[cls][cls]
        fp = cm[other][cls]
        fn = cm[cls][other]

        precision = tp / (tp + fp) if (tp + fp) > 0 else 0.0
        recall = tp / (tp + fn) if (tp + fn) > 0 else 0.0
        f1 = (
            2 * precision * recall / (precision + recall)
            if (precision + recall) > 0
            else 0.0
        )
        per_class[cls] = {"precision": precision, "recall": recall, "f1": f1}

    support = Counter(Verdict(t) for t in y_true)
    return ClassificationMetrics(
        accuracy=accuracy,
        per_class=per_class,
        macro_f1=sum(m["f1"] for m in per_class.values()) / len(CLASSES),
        confusion_matrix=cm,
        support={c: support.get(c, 0) for c in CLASSES},
    )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class EvaluationResult:
    """Outcome of a held-out evaluation run."""

    predictions: dict[Hashable, Verdict]
    actual_labels: dict[Hashable, Verdict]
    accuracy: float
    metrics: ClassificationMetrics
    train_ids: list[Hashable] = field(default_factory=list)
    test_ids: list[Hashable] = field(default_factory=list)
    results: list[ClassificationResult] = field(default_factory=list, repr=False)
    failures: list[RecordFailure] = field(default_factory=list)
    stats: Optional[ClassStatistics] = field(default=None, repr=False)

    def to_dict(self) -> dict:
        return {
            "accuracy": round(self.accuracy, 4),
            "train_size": len(self.train_ids),
            "test_size": len(self.test_ids),
            "metrics": self.metrics.to_dict(),
            "predictions": [
                {
                    "record_id": rid,
                    "predicted": int(pred),
                    "actual": int(self.actual_labels[rid]),
                }
                for rid, pred in self.predictions.items()
            ],
            "failures": [f.to_dict() for f in self.failures],
        }


@dataclass
class PredictionResult:
    """Outcome of labeling previously unlabeled records."""

    predictions: dict[Hashable, Verdict]
    records: list[dict] = field(default_factory=list, repr=False)
    results: list[ClassificationResult] = field(default_factory=list, repr=False)
    failures: list[RecordFailure] = field(default_factory=list)
    stats: Optional[ClassStatistics] = field(default=None, repr=False)

    @property
    def verdict_counts(self) -> dict[Verdict, int]:
        counts = Counter(self.predictions.values())
        return {c: counts.get(c, 0) for c in CLASSES}

    def to_dict(self) -> dict:
        return {
            "predictions": [
                {"record_id": rid, "predicted": int(v)} for rid, v in self.predictions.items()
            ],
            "verdict_counts": {str(int(c)): n for c, n in self.verdict_counts.items()},
            "failures": [f.to_dict() for f in self.failures],
        }


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def _build_model(config: PipelineConfig) -> BernoulliNaiveBayes:
    return BernoulliNaiveBayes(
        min_doc_freq=config.min_doc_freq,
        normalizer=config.normalizer(),
        log_space=config.log_space,
    )


def _train(model: BernoulliNaiveBayes, docs: Sequence[Document]) -> ClassStatistics:
    return model.train(
        [d.text for d in docs],
        [d.label for d in docs],
        [d.record_id for d in docs],
    )


def _classify(
    model: BernoulliNaiveBayes,
    docs: Sequence[Document],
) -> tuple[list[ClassificationResult], list[RecordFailure]]:
    return model.classify_batch([d.text for d in docs], [d.record_id for d in docs])


def shuffle_split(
    items: Sequence,
    train_fraction: float,
    seed: int,
) -> tuple[list, list]:
    """Deterministically shuffle ``items`` and cut into (train, test).

    The cut sits at ``round(train_fraction * len(items))``.
    """
    shuffled = list(items)
    random.Random(seed).shuffle(shuffled)
    cut = int(round(train_fraction * len(shuffled)))
    return shuffled[:cut], shuffled[cut:]


def evaluate(
    records: Sequence[Record],
    schema: DatasetSchema,
    config: Optional[PipelineConfig] = None,
) -> EvaluationResult:
    """Train on a seeded random split of the labeled rows and score the rest.

    Rows whose label is an unlabeled sentinel take no part in evaluation.

    Raises:
        MalformedRecordError: A record lacks the text or label field, or a
            training narrative is not text.
        InvalidLabelError: A label is neither 0, 1 nor a sentinel.
        EmptyClassError: The training split misses a class.
        EmptyVocabularyError: Pruning leaves no training terms.
        ValueError: The split leaves the test side empty.
    """
    config = config or PipelineConfig()
    documents = to_documents(records, schema)
    labeled, unlabeled = split_labeled(documents)
    if unlabeled:
        logger.info("Excluding %d unlabeled record(s) from evaluation", len(unlabeled))
    if not labeled:
        raise EmptyClassError("Dataset has no labeled records to evaluate on")

    train_docs, test_docs = shuffle_split(labeled, config.train_fraction, config.random_seed)
    if not test_docs:
        raise ValueError(
            f"train_fraction={config.train_fraction} leaves no test records "
            f"out of {len(labeled)}"
        )
    logger.info(
        "Split %d labeled records into %d train / %d test (seed=%d)",
        len(labeled), len(train_docs), len(test_docs), config.random_seed,
    )

    model = _build_model(config)
    stats = _train(model, train_docs)
    results, failures = _classify(model, test_docs)

    actual_by_id = {d.record_id: d.label for d in test_docs}
    predictions = {r.record_id: r.verdict for r in results}
    actual_labels = {rid: actual_by_id[rid] for rid in predictions}
    metrics = compute_metrics(list(actual_labels.values()), list(predictions.values()))
    metrics.failures = failures

    logger.info(
        "Accuracy %.4f on %d test records (%d failed)",
        metrics.accuracy, len(results), len(failures),
    )

    return EvaluationResult(
        predictions=predictions,
        actual_labels=actual_labels,  # type: ignore[arg-type]
        accuracy=metrics.accuracy,
        metrics=metrics,
        train_ids=[d.record_id for d in train_docs],
        test_ids=[d.record_id for d in test_docs],
        results=results,
        failures=failures,
        stats=stats,
    )


def predict_unlabeled(
    train_records: Sequence[Record],
    unlabeled_records: Sequence[Record],
    schema: DatasetSchema,
    config: Optional[PipelineConfig] = None,
) -> PredictionResult:
    """Train on ``train_records`` and label every unlabeled record.

    Records in ``unlabeled_records`` that already carry a label are passed
    through untouched. The returned ``records`` are copies of
    ``unlabeled_records`` with the label field filled in.

    Raises:
        MalformedRecordError, InvalidLabelError, EmptyClassError,
        EmptyVocabularyError: Validation or training failed; nothing is
            predicted.
    """
    config = config or PipelineConfig()
    train_docs = to_documents(train_records, schema)
    labeled, stray = split_labeled(train_docs)
    if stray:
        raise InvalidLabelError(
            f"{len(stray)} training record(s) are unlabeled; training requires 0 or 1",
            [d.record_id for d in stray],
        )

    target_docs = to_documents(unlabeled_records, schema, require_label=False)
    already_labeled, to_predict = split_labeled(target_docs)
    if already_labeled:
        logger.info("Leaving %d already-labeled record(s) unchanged", len(already_labeled))

    model = _build_model(config)
    stats = _train(model, labeled)
    results, failures = _classify(model, to_predict)
    predictions = {r.record_id: r.verdict for r in results}

    logger.info(
        "Labeled %d record(s) (%d failed)", len(predictions), len(failures)
    )

    return PredictionResult(
        predictions=predictions,
        records=apply_predictions(unlabeled_records, predictions, schema),
        results=results,
        failures=failures,
        stats=stats,
    )


# ---------------------------------------------------------------------------
# Cross-Validation
# ---------------------------------------------------------------------------


def stratified_k_fold(
    labels: Sequence[Verdict],
    k: int = 5,
    seed: int = 42,
) -> list[tuple[list[int], list[int]]]:
    """Generate stratified k-fold train/test index splits.

    Each fold keeps approximately the class balance of the full dataset.
    """
    if k < 2:
        raise ValueError(f"k must be >= 2, got {k}")
    rng = random.Random(seed)

    class_indices: dict[Verdict, list[int]] = defaultdict(list)
    for idx, label in enumerate(labels):
        class_indices[Verdict(label)].append(idx)

    # Shuffle within each class, in a fixed class order
    for cls in sorted(class_indices):
        rng.shuffle(class_indices[cls])

    # Round-robin within class
    fold_assignments: list[int] = [0] * len(labels)
    for cls_indices in class_indices.values():
        for i, idx in enumerate(cls_indices):
            fold_assignments[idx] = i % k

    folds: list[tuple[list[int], list[int]]] = []
    for fold_idx in range(k):
        test_indices = [i for i, f in enumerate(fold_assignments) if f == fold_idx]
        train_indices = [i for i, f in enumerate(fold_assignments) if f != fold_idx]
        folds.append((train_indices, test_indices))

    return folds


def cross_validate(
    records: Sequence[Record],
    schema: DatasetSchema,
    config: Optional[PipelineConfig] = None,
    k: int = 5,
) -> list[ClassificationMetrics]:
    """Run stratified k-fold cross-validation over the labeled rows.

    Returns:
        One ClassificationMetrics per fold. Test records that could not be
        classified are excluded from the fold's scores and listed in its
        ``failures``.
    """
    config = config or PipelineConfig()
    labeled, _ = split_labeled(to_documents(records, schema))
    folds = stratified_k_fold([d.label for d in labeled], k=k, seed=config.random_seed)  # type: ignore[misc]

    metrics: list[ClassificationMetrics] = []
    for fold_no, (train_idx, test_idx) in enumerate(folds, 1):
        model = _build_model(config)
        _train(model, [labeled[i] for i in train_idx])
        test_docs = [labeled[i] for i in test_idx]
        results, failures = _classify(model, test_docs)
        if failures:
            logger.warning(
                "Fold %d/%d: %d record(s) could not be classified: %s",
                fold_no, k, len(failures), ", ".join(str(f.record_id) for f in failures),
            )

        actual_by_id = {d.record_id: d.label for d in test_docs}
        fold_metrics = compute_metrics(
            [actual_by_id[r.record_id] for r in results],  # type: ignore[misc]
            [r.verdict for r in results],
        )
        fold_metrics.failures = failures
        logger.debug("Fold %d/%d accuracy %.4f", fold_no, k, fold_metrics.accuracy)
        metrics.append(fold_metrics)

    return metrics
