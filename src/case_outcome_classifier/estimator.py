"""Bernoulli Naive Bayes parameter estimation.

For each class ``c`` in {0, 1}::

    prior_c   = N_c / N_total
    P(t | c)  = (docs of class c containing t + 1) / (N_c + 2)

The ``+ 2`` in the denominator accounts for the two possible outcomes of a
presence feature (present / absent), so every conditional probability lies
strictly between 0 and 1.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Hashable, Sequence
from dataclasses import dataclass, field
from typing import Optional

from .errors import EmptyClassError, EmptyVocabularyError, InvalidLabelError
from .models import Verdict
from .vocabulary import Vocabulary

logger = logging.getLogger(__name__)

CLASSES: tuple[Verdict, Verdict] = (Verdict.NOT_GUILTY, Verdict.GUILTY)


@dataclass(frozen=True)
class ClassStatistics:
    """Trained Bernoulli NB parameters. Immutable once estimated.

    Attributes:
        terms: Training vocabulary (sorted).
        class_counts: ``N_c`` per class.
        priors: ``N_c / N_total`` per class.
        conditional_probs: ``P(term | c)`` per class over :attr:`terms`.
    """

    terms: tuple[str, ...]
    class_counts: dict[Verdict, int]
    priors: dict[Verdict, float]
    conditional_probs: dict[Verdict, dict[str, float]] = field(repr=False)

    @property
    def num_documents(self) -> int:
        return sum(self.class_counts.values())

    def prob(self, term: str, verdict: Verdict) -> float:
        return self.conditional_probs[verdict][term]

    def most_informative_terms(
        self,
        verdict: Verdict,
        top_n: int = 20,
    ) -> list[tuple[str, float]]:
        """Terms whose presence most favours ``verdict`` over the other class.

        Ranked by ``log P(t | verdict) - log P(t | other)``.
        """
        verdict = Verdict(verdict)
        other = Verdict(1 - verdict)
        target = self.conditional_probs[verdict]
        rest = self.conditional_probs[other]
        ratios = [
            (term, round(math.log(target[term]) - math.log(rest[term]), 4))
            for term in self.terms
        ]
        ratios.sort(key=lambda x: (-x[1], x[0]))
        return ratios[:top_n]

    def to_dict(self) -> dict:
        """Serialize to JSON-compatible primitives."""
        return {
            "terms": list(self.terms),
            "class_counts": {str(int(c)): n for c, n in self.class_counts.items()},
            "priors": {str(int(c)): p for c, p in self.priors.items()},
            "conditional_probs": {
                str(int(c)): probs for c, probs in self.conditional_probs.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ClassStatistics":
        """Deserialize from :meth:`to_dict` output."""
        return cls(
            terms=tuple(data["terms"]),
            class_counts={Verdict(int(c)): n for c, n in data["class_counts"].items()},
            priors={Verdict(int(c)): p for c, p in data["priors"].items()},
            conditional_probs={
                Verdict(int(c)): dict(probs)
                for c, probs in data["conditional_probs"].items()
            },
        )


def _coerce_labels(
    labels: Sequence[object],
    record_ids: Sequence[Hashable],
) -> list[Verdict]:
    bad: list[Hashable] = []
    verdicts: list[Verdict] = []
    for rid, label in zip(record_ids, labels):
        if isinstance(label, bool) or label not in (0, 1):
            bad.append(rid)
            continue
        verdicts.append(Verdict(int(label)))  # type: ignore[arg-type]
    if bad:
        raise InvalidLabelError(
            f"{len(bad)} training record(s) have a label outside {{0, 1}}", bad
        )
    return verdicts


def estimate(
    vocabulary: Vocabulary,
    labels: Sequence[object],
    record_ids: Optional[Sequence[Hashable]] = None,
) -> ClassStatistics:
    """Estimate priors and smoothed conditional probabilities.

    Args:
        vocabulary: Training vocabulary; its presence rows must align with
            ``labels``.
        labels: One label per training document, each 0 or 1.
        record_ids: Identifiers used in error reports. Defaults to row
            positions.

    Returns:
        Immutable :class:`ClassStatistics`.

    Raises:
        ValueError: If rows and labels differ in length.
        InvalidLabelError: If any label is not 0 or 1.
        EmptyClassError: If either class has no training documents.
        EmptyVocabularyError: If the vocabulary has no terms.
    """
    if len(labels) != vocabulary.num_documents:
        raise ValueError(
            f"presence rows ({vocabulary.num_documents}) and labels ({len(labels)}) "
            "must have same length"
        )
    ids = list(record_ids) if record_ids is not None else list(range(len(labels)))
    verdicts = _coerce_labels(labels, ids)

    class_counts = {c: 0 for c in CLASSES}
    for v in verdicts:
        class_counts[v] += 1

    for c in CLASSES:
        if class_counts[c] == 0:
            raise EmptyClassError(
                f"No training documents labeled {int(c)} ({c.display_name}); "
                "both classes must be represented",
                ids,
            )

    if not vocabulary.terms:
        raise EmptyVocabularyError(
            f"No term appears in at least {vocabulary.min_doc_freq} training "
            f"documents; the vocabulary is empty",
            ids,
        )

    n_total = len(verdicts)
    priors = {c: class_counts[c] / n_total for c in CLASSES}

    terms = tuple(vocabulary.sorted_terms)
    docs_with_term = {c: {t: 0 for t in terms} for c in CLASSES}
    for row, verdict in zip(vocabulary.rows, verdicts):
        counts = docs_with_term[verdict]
        for term in row:
            counts[term] += 1

    conditional_probs = {
        c: {t: (docs_with_term[c][t] + 1) / (class_counts[c] + 2) for t in terms}
        for c in CLASSES
    }

    logger.info(
        "Estimated parameters: %d documents (%d not guilty, %d guilty), %d terms",
        n_total, class_counts[Verdict.NOT_GUILTY], class_counts[Verdict.GUILTY], len(terms),
    )

    return ClassStatistics(
        terms=terms,
        class_counts=class_counts,
        priors=priors,
        conditional_probs=conditional_probs,
    )
