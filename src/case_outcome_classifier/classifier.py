"""Bernoulli Naive Bayes scoring and the high-level classifier.

Scoring walks the *entire* training vocabulary for every document: a term
present in the document contributes ``P(t | c)``, an absent term contributes
``1 - P(t | c)``. Scores are plain products of probabilities (no logs), so
large vocabularies drift towards zero; :func:`log_scores` offers the same
ranking in log space.

Term detection for a batch goes through a second, independently pruned
vocabulary built from the batch itself. A term only counts as present in a
document if it also clears ``min_doc_freq`` within the batch. Probability
lookups still iterate the training vocabulary.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Container, Hashable, Sequence
from pathlib import Path
from typing import Optional

from .errors import MalformedRecordError
from .estimator import ClassStatistics, estimate
from .models import ClassificationResult, RecordFailure, Verdict
from .preprocessing import CleanedCorpus, TextNormalizer, tokenize
from .vocabulary import DEFAULT_MIN_DOC_FREQ, Vocabulary, build_vocabulary

logger = logging.getLogger(__name__)

MODEL_FORMAT_VERSION = "1.0"


# ---------------------------------------------------------------------------
# Pure scoring functions
# ---------------------------------------------------------------------------


def present_terms(
    cleaned_text: str,
    test_vocabulary: Optional[Container[str]] = None,
) -> frozenset[str]:
    """Distinct terms of a document, restricted to the test-side vocabulary.

    With ``test_vocabulary=None`` every token of the document counts.
    """
    tokens = tokenize(cleaned_text)
    if test_vocabulary is None:
        return frozenset(tokens)
    return frozenset(t for t in tokens if t in test_vocabulary)


def score_document(
    cleaned_text: str,
    stats: ClassStatistics,
    test_vocabulary: Optional[Container[str]] = None,
) -> tuple[float, float]:
    """Return ``(score_not_guilty, score_guilty)`` as direct products."""
    present = present_terms(cleaned_text, test_vocabulary)
    probs_0 = stats.conditional_probs[Verdict.NOT_GUILTY]
    probs_1 = stats.conditional_probs[Verdict.GUILTY]

    score_0 = stats.priors[Verdict.NOT_GUILTY]
    score_1 = stats.priors[Verdict.GUILTY]
    for term in stats.terms:
        if term in present:
            score_0 *= probs_0[term]
            score_1 *= probs_1[term]
        else:
            score_0 *= 1 - probs_0[term]
            score_1 *= 1 - probs_1[term]
    return score_0, score_1


def log_scores(
    cleaned_text: str,
    stats: ClassStatistics,
    test_vocabulary: Optional[Container[str]] = None,
) -> tuple[float, float]:
    """Log-space counterpart of :func:`score_document`.

    Immune to underflow; ranks the classes identically whenever the direct
    products are representable.
    """
    present = present_terms(cleaned_text, test_vocabulary)
    probs_0 = stats.conditional_probs[Verdict.NOT_GUILTY]
    probs_1 = stats.conditional_probs[Verdict.GUILTY]

    score_0 = math.log(stats.priors[Verdict.NOT_GUILTY])
    score_1 = math.log(stats.priors[Verdict.GUILTY])
    for term in stats.terms:
        if term in present:
            score_0 += math.log(probs_0[term])
            score_1 += math.log(probs_1[term])
        else:
            score_0 += math.log1p(-probs_0[term])
            score_1 += math.log1p(-probs_1[term])
    return score_0, score_1


def decide(score_0: float, score_1: float) -> Verdict:
    """Pick the higher-scoring class; ties go to not guilty."""
    return Verdict.NOT_GUILTY if score_0 >= score_1 else Verdict.GUILTY


def classify(
    cleaned_text: str,
    stats: ClassStatistics,
    test_vocabulary: Optional[Container[str]] = None,
    log_space: bool = False,
) -> Verdict:
    """Predict the verdict for one cleaned document."""
    scorer = log_scores if log_space else score_document
    return decide(*scorer(cleaned_text, stats, test_vocabulary))


def classify_corpus(
    cleaned_docs: Sequence[str],
    record_ids: Sequence[Hashable],
    stats: ClassStatistics,
    min_doc_freq: int = DEFAULT_MIN_DOC_FREQ,
    log_space: bool = False,
) -> tuple[list[ClassificationResult], Vocabulary]:
    """Classify a batch of cleaned documents against trained statistics.

    Builds the batch's own pruned vocabulary (same threshold as training)
    and uses it as the presence filter for every document.

    Returns:
        One result per document, in input order, plus the test-side
        vocabulary that was used.
    """
    test_vocabulary = build_vocabulary(cleaned_docs, min_doc_freq)
    if not test_vocabulary.terms and cleaned_docs:
        logger.warning(
            "Test-side vocabulary is empty at min_doc_freq=%d for %d documents; "
            "every document will be scored as if it contained no terms",
            min_doc_freq, len(cleaned_docs),
        )

    scorer = log_scores if log_space else score_document
    results = []
    for rid, doc in zip(record_ids, cleaned_docs):
        score_0, score_1 = scorer(doc, stats, test_vocabulary)
        results.append(ClassificationResult(
            record_id=rid,
            verdict=decide(score_0, score_1),
            score_not_guilty=score_0,
            score_guilty=score_1,
        ))
    return results, test_vocabulary


# ---------------------------------------------------------------------------
# Classification Pipeline (High-Level API)
# ---------------------------------------------------------------------------


class BernoulliNaiveBayes:
    """Train/predict wrapper around normalization, vocabulary and scoring.

    Example::

        model = BernoulliNaiveBayes(min_doc_freq=5)
        model.train(narratives, labels)

        results, failures = model.classify_batch(unlabeled_narratives)
        model.save("model.json")
        loaded = BernoulliNaiveBayes.load("model.json")

    Args:
        min_doc_freq: Pruning threshold for both training and test-side
            vocabularies.
        normalizer: Text normalizer (defaults to English stopwords).
        log_space: Score with :func:`log_scores` instead of direct products.
    """

    def __init__(
        self,
        min_doc_freq: int = DEFAULT_MIN_DOC_FREQ,
        normalizer: Optional[TextNormalizer] = None,
        log_space: bool = False,
    ) -> None:
        if min_doc_freq < 1:
            raise ValueError(f"min_doc_freq must be >= 1, got {min_doc_freq}")
        self.min_doc_freq = min_doc_freq
        self.normalizer = normalizer or TextNormalizer()
        self.log_space = log_space
        self._stats: Optional[ClassStatistics] = None

    @property
    def is_trained(self) -> bool:
        return self._stats is not None

    @property
    def stats(self) -> ClassStatistics:
        if self._stats is None:
            raise RuntimeError("Classifier not trained. Call train() first.")
        return self._stats

    def train(
        self,
        texts: Sequence[Optional[str]],
        labels: Sequence[object],
        record_ids: Optional[Sequence[Hashable]] = None,
    ) -> ClassStatistics:
        """Fit class statistics on labeled narratives.

        Raises:
            InvalidLabelError, EmptyClassError, EmptyVocabularyError,
            MalformedRecordError: Training is all-or-nothing.
        """
        if len(texts) != len(labels):
            raise ValueError(
                f"texts ({len(texts)}) and labels ({len(labels)}) must have same length"
            )
        ids = list(record_ids) if record_ids is not None else list(range(len(texts)))

        cleaned, _, rejected = CleanedCorpus(texts, self.normalizer).clean_each(ids)
        if rejected:
            raise MalformedRecordError(
                f"{len(rejected)} training record(s) have a non-text narrative",
                [rid for rid, _ in rejected],
            )

        vocabulary = build_vocabulary(cleaned, self.min_doc_freq)
        self._stats = estimate(vocabulary, labels, ids)
        return self._stats

    def classify(
        self,
        text: Optional[str],
        test_vocabulary: Optional[Container[str]] = None,
    ) -> Verdict:
        """Classify a single narrative.

        A lone document has no batch to prune against, so unless a
        ``test_vocabulary`` is supplied every token counts as present.
        """
        return classify(
            self.normalizer.normalize(text), self.stats, test_vocabulary, self.log_space
        )

    def classify_batch(
        self,
        texts: Sequence[Optional[str]],
        record_ids: Optional[Sequence[Hashable]] = None,
    ) -> tuple[list[ClassificationResult], list[RecordFailure]]:
        """Classify narratives as one test corpus.

        Records whose text cannot be normalized are reported as failures
        and left out of the test-side vocabulary; the rest are classified.
        """
        stats = self.stats
        cleaned, kept_ids, rejected = CleanedCorpus(texts, self.normalizer).clean_each(
            record_ids
        )
        failures = []
        for rid, error in rejected:
            logger.warning("Skipping record %r: %s", rid, error)
            failures.append(RecordFailure(record_id=rid, error=str(error)))

        results, _ = classify_corpus(
            cleaned, kept_ids, stats, self.min_doc_freq, self.log_space
        )
        return results, failures

    def most_informative_terms(
        self,
        verdict: Verdict,
        top_n: int = 20,
    ) -> list[tuple[str, float]]:
        return self.stats.most_informative_terms(verdict, top_n)

    def save(self, path: str | Path) -> None:
        """Save the trained model to a JSON file.

        Raises:
            RuntimeError: If the classifier has not been trained.
        """
        if self._stats is None:
            raise RuntimeError("Cannot save untrained classifier.")

        model_data = {
            "version": MODEL_FORMAT_VERSION,
            "min_doc_freq": self.min_doc_freq,
            "log_space": self.log_space,
            "stopwords": sorted(self.normalizer.stopwords),
            "punctuation": (
                None if self.normalizer.punctuation is None
                else sorted(self.normalizer.punctuation)
            ),
            "stats": self._stats.to_dict(),
        }

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(model_data, f, indent=2)

    @classmethod
    def load(cls, path: str | Path) -> "BernoulliNaiveBayes":
        """Load a trained model from a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        model = cls(
            min_doc_freq=data["min_doc_freq"],
            normalizer=TextNormalizer(
                stopwords=data["stopwords"],
                punctuation=data.get("punctuation"),
            ),
            log_space=data.get("log_space", False),
        )
        model._stats = ClassStatistics.from_dict(data["stats"])
        return model
