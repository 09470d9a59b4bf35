"""Tests for Bernoulli Naive Bayes scoring and the high-level classifier.

Covers the direct-product scoring rule, the tie-break, the test-side
presence filter, the log-space variant and model persistence.
"""

from __future__ import annotations

import math

import pytest

from case_outcome_classifier.classifier import (
    BernoulliNaiveBayes,
    classify,
    classify_corpus,
    decide,
    log_scores,
    present_terms,
    score_document,
)
from case_outcome_classifier.errors import EmptyVocabularyError, MalformedRecordError
from case_outcome_classifier.estimator import ClassStatistics, estimate
from case_outcome_classifier.models import Verdict
from case_outcome_classifier.vocabulary import build_vocabulary


@pytest.fixture
def plea_stats(plea_corpus) -> ClassStatistics:
    docs, labels = plea_corpus
    return estimate(build_vocabulary(docs, min_doc_freq=1), labels)


def _symmetric_stats() -> ClassStatistics:
    terms = ("dismissed", "guilty")
    probs = {"dismissed": 0.25, "guilty": 0.75}
    return ClassStatistics(
        terms=terms,
        class_counts={Verdict.NOT_GUILTY: 2, Verdict.GUILTY: 2},
        priors={Verdict.NOT_GUILTY: 0.5, Verdict.GUILTY: 0.5},
        conditional_probs={Verdict.NOT_GUILTY: dict(probs), Verdict.GUILTY: dict(probs)},
    )


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


class TestScoreDocument:
    """Tests for the direct multiplicative score."""

    def test_guilty_plea_scenario(self, plea_stats: ClassStatistics) -> None:
        score_0, score_1 = score_document("guilty plea", plea_stats)
        assert score_1 > score_0
        assert classify("guilty plea", plea_stats) == Verdict.GUILTY

    def test_exact_product(self, plea_stats: ClassStatistics) -> None:
        score_0, score_1 = score_document("guilty plea", plea_stats)
        # present: guilty, plea; absent: entered, not, contact, resolved
        expected_0 = 0.6 * (7 / 8) * (1 / 8) * (7 / 8) * (1 / 8) ** 3
        expected_1 = 0.4 * (5 / 6) * (5 / 6) * (1 / 6) * (5 / 6) ** 3
        assert score_0 == pytest.approx(expected_0)
        assert score_1 == pytest.approx(expected_1)

    def test_not_guilty_document(self, plea_stats: ClassStatistics) -> None:
        assert classify("not guilty contact resolved", plea_stats) == Verdict.NOT_GUILTY

    def test_repeated_terms_count_once(self, plea_stats: ClassStatistics) -> None:
        assert score_document("plea plea plea", plea_stats) == score_document("plea", plea_stats)

    def test_unknown_terms_ignored(self, plea_stats: ClassStatistics) -> None:
        assert score_document("plea arraignment", plea_stats) == score_document("plea", plea_stats)

    def test_empty_document(self, plea_stats: ClassStatistics) -> None:
        """Every term is absent, so only complements contribute."""
        score_0, score_1 = score_document("", plea_stats)
        expected_0 = 0.6
        expected_1 = 0.4
        for term in plea_stats.terms:
            expected_0 *= 1 - plea_stats.prob(term, Verdict.NOT_GUILTY)
            expected_1 *= 1 - plea_stats.prob(term, Verdict.GUILTY)
        assert score_0 == pytest.approx(expected_0)
        assert score_1 == pytest.approx(expected_1)
        assert score_0 > 0 and score_1 > 0
        assert classify("", plea_stats) == classify("", plea_stats)

    def test_test_vocabulary_filters_presence(self, plea_stats: ClassStatistics) -> None:
        """A term outside the test-side vocabulary is scored as absent."""
        filtered = score_document("guilty plea", plea_stats, test_vocabulary={"guilty"})
        assert filtered == score_document("guilty", plea_stats)

    def test_present_terms(self) -> None:
        assert present_terms("a b b c") == frozenset({"a", "b", "c"})
        assert present_terms("a b b c", {"b", "z"}) == frozenset({"b"})


class TestDecide:
    def test_tie_goes_to_not_guilty(self) -> None:
        assert decide(0.25, 0.25) == Verdict.NOT_GUILTY

    def test_higher_score_wins(self) -> None:
        assert decide(0.1, 0.2) == Verdict.GUILTY
        assert decide(0.2, 0.1) == Verdict.NOT_GUILTY

    def test_identical_class_statistics_tie(self) -> None:
        stats = _symmetric_stats()
        score_0, score_1 = score_document("guilty", stats)
        assert score_0 == score_1
        assert classify("guilty", stats) == Verdict.NOT_GUILTY


class TestLogScores:
    """The log-space variant must rank classes like the direct product."""

    @pytest.mark.parametrize("doc", ["", "guilty plea", "not contact", "entered resolved"])
    def test_same_ranking(self, plea_stats: ClassStatistics, doc: str) -> None:
        direct = score_document(doc, plea_stats)
        logs = log_scores(doc, plea_stats)
        assert logs[0] == pytest.approx(math.log(direct[0]))
        assert logs[1] == pytest.approx(math.log(direct[1]))
        assert classify(doc, plea_stats, log_space=True) == classify(doc, plea_stats)

    def test_survives_underflow(self) -> None:
        """Direct products collapse to 0.0 on large vocabularies; logs do not."""
        terms = tuple(f"term{i}" for i in range(2000))
        stats = ClassStatistics(
            terms=terms,
            class_counts={Verdict.NOT_GUILTY: 10, Verdict.GUILTY: 10},
            priors={Verdict.NOT_GUILTY: 0.5, Verdict.GUILTY: 0.5},
            conditional_probs={
                Verdict.NOT_GUILTY: {t: 0.5 for t in terms},
                Verdict.GUILTY: {t: 0.4 for t in terms},
            },
        )
        assert score_document("", stats) == (0.0, 0.0)
        assert classify("", stats) == Verdict.NOT_GUILTY
        log_0, log_1 = log_scores("", stats)
        assert log_1 > log_0
        assert classify("", stats, log_space=True) == Verdict.GUILTY


class TestClassifyCorpus:
    """Batch classification with the independently pruned test vocabulary."""

    def test_builds_test_vocabulary(self, plea_stats: ClassStatistics) -> None:
        docs = ["guilty plea", "guilty plea", "not contact"]
        results, test_vocab = classify_corpus(docs, ["a", "b", "c"], plea_stats, min_doc_freq=2)
        assert test_vocab.terms == frozenset({"guilty", "plea"})
        assert [r.record_id for r in results] == ["a", "b", "c"]
        assert results[0].verdict == Verdict.GUILTY
        # "not" and "contact" fall below the batch threshold, so the third
        # document is scored exactly like an empty one.
        empty = score_document("", plea_stats)
        assert (results[2].score_not_guilty, results[2].score_guilty) == empty

    def test_results_match_pure_function(self, plea_stats: ClassStatistics) -> None:
        docs = ["guilty plea", "not guilty contact resolved"]
        results, test_vocab = classify_corpus(docs, [0, 1], plea_stats, min_doc_freq=1)
        for doc, result in zip(docs, results):
            assert result.verdict == classify(doc, plea_stats, test_vocab)

    def test_empty_batch(self, plea_stats: ClassStatistics) -> None:
        results, test_vocab = classify_corpus([], [], plea_stats)
        assert results == []
        assert len(test_vocab) == 0


# ---------------------------------------------------------------------------
# BernoulliNaiveBayes
# ---------------------------------------------------------------------------


class TestBernoulliNaiveBayes:
    """Tests for the high-level train/predict wrapper."""

    @pytest.fixture
    def model(self, keep_not_normalizer) -> BernoulliNaiveBayes:
        texts = ["Not guilty; contact resolved."] * 6 + ["Guilty plea entered."] * 4
        labels = [0] * 6 + [1] * 4
        model = BernoulliNaiveBayes(min_doc_freq=1, normalizer=keep_not_normalizer)
        model.train(texts, labels)
        return model

    def test_train_and_classify(self, model: BernoulliNaiveBayes) -> None:
        assert model.is_trained
        assert set(model.stats.terms) == {
            "not", "guilty", "contact", "resolved", "plea", "entered",
        }
        assert model.classify("GUILTY plea!") == Verdict.GUILTY
        assert model.classify("Not guilty, resolved") == Verdict.NOT_GUILTY

    def test_classify_batch_isolates_bad_records(self, model: BernoulliNaiveBayes) -> None:
        results, failures = model.classify_batch(
            ["Guilty plea entered.", 12345, "Not guilty; contact resolved."],  # type: ignore[list-item]
            record_ids=["r1", "r2", "r3"],
        )
        assert [r.record_id for r in results] == ["r1", "r3"]
        assert [f.record_id for f in failures] == ["r2"]
        assert results[0].verdict == Verdict.GUILTY
        assert results[1].verdict == Verdict.NOT_GUILTY

    def test_train_collects_every_non_text_record(self) -> None:
        texts = ["Pleaded guilty.", 3, "Charges dropped.", None, {"x": 1}]
        with pytest.raises(MalformedRecordError) as exc_info:
            BernoulliNaiveBayes(min_doc_freq=1).train(
                texts, [1, 0, 0, 1, 0], ["p1", "p2", "p3", "p4", "p5"]  # type: ignore[arg-type]
            )
        assert exc_info.value.record_ids == ["p2", "p5"]

    def test_untrained_raises(self) -> None:
        with pytest.raises(RuntimeError, match="not trained"):
            BernoulliNaiveBayes().classify("guilty")

    def test_high_threshold_raises_empty_vocabulary(self) -> None:
        model = BernoulliNaiveBayes(min_doc_freq=50)
        with pytest.raises(EmptyVocabularyError):
            model.train(["Pleaded guilty.", "Charges dropped."], [1, 0])
        assert not model.is_trained

    def test_invalid_min_doc_freq(self) -> None:
        with pytest.raises(ValueError):
            BernoulliNaiveBayes(min_doc_freq=0)

    def test_most_informative_terms(self, model: BernoulliNaiveBayes) -> None:
        top = dict(model.most_informative_terms(Verdict.GUILTY, top_n=2))
        assert set(top) == {"plea", "entered"}

    def test_save_and_load(self, model: BernoulliNaiveBayes, tmp_path) -> None:
        path = tmp_path / "models" / "nb.json"
        model.save(path)
        loaded = BernoulliNaiveBayes.load(path)
        assert loaded.stats == model.stats
        assert loaded.min_doc_freq == 1
        assert "not" not in loaded.normalizer.stopwords
        assert loaded.classify("guilty plea") == model.classify("guilty plea")

    def test_save_untrained_raises(self, tmp_path) -> None:
        with pytest.raises(RuntimeError):
            BernoulliNaiveBayes().save(tmp_path / "nb.json")
