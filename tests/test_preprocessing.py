"""Tests for text normalization and the lazy cleaned corpus."""

from __future__ import annotations

import pytest

from case_outcome_classifier.errors import MalformedRecordError
from case_outcome_classifier.preprocessing import (
    ENGLISH_STOP_WORDS,
    CleanedCorpus,
    TextNormalizer,
    normalize,
    stopwords_for,
    tokenize,
)

# ---------------------------------------------------------------------------
# normalize
# ---------------------------------------------------------------------------


class TestNormalize:
    """Tests for the four-step normalization."""

    def test_lowercases(self) -> None:
        assert normalize("ACQUITTED") == "acquitted"

    def test_removes_stopwords(self) -> None:
        assert normalize("Pleaded GUILTY to the assault charge.") == "pleaded guilty assault charge"

    def test_punctuation_deleted_not_replaced(self) -> None:
        """Hyphenated words are joined rather than split."""
        assert normalize("hit-and-run") == "hitandrun"

    def test_contractions_survive_stopwords(self) -> None:
        """Apostrophes go before stopword removal, so "didn't" stays as "didnt"."""
        assert normalize("He didn't appear") == "didnt appear"

    def test_collapses_whitespace(self) -> None:
        assert normalize("  charges \t\n  dropped   ") == "charges dropped"

    def test_unicode_punctuation(self) -> None:
        assert normalize("Guilty—plea “entered”") == "guiltyplea entered"

    def test_none_is_empty(self) -> None:
        assert normalize(None) == ""

    def test_empty_string(self) -> None:
        assert normalize("") == ""

    def test_only_stopwords_is_empty(self) -> None:
        assert normalize("The, and; of it!") == ""

    def test_non_text_raises(self) -> None:
        with pytest.raises(MalformedRecordError):
            normalize(42)  # type: ignore[arg-type]


class TestTextNormalizer:
    """Tests for injectable stopwords and punctuation."""

    def test_custom_stopwords(self) -> None:
        normalizer = TextNormalizer(stopwords={"charges"})
        assert normalizer.normalize("the charges were dropped") == "the were dropped"

    def test_custom_stopwords_are_lowercased(self) -> None:
        normalizer = TextNormalizer(stopwords={"DROPPED"})
        assert normalizer.normalize("Dropped charges") == "charges"

    def test_custom_punctuation(self) -> None:
        normalizer = TextNormalizer(stopwords=set(), punctuation={"."})
        assert normalizer.normalize("no-contest plea.") == "no-contest plea"

    def test_default_uses_english(self) -> None:
        assert TextNormalizer().stopwords is ENGLISH_STOP_WORDS

    def test_keep_negation(self, keep_not_normalizer: TextNormalizer) -> None:
        assert keep_not_normalizer.normalize("Found not guilty") == "found not guilty"


class TestStopwordsFor:
    def test_english_aliases(self) -> None:
        assert stopwords_for("english") is stopwords_for("EN")

    def test_contains_common_words(self) -> None:
        assert {"the", "and", "of", "to"} <= stopwords_for("english")

    def test_unknown_language(self) -> None:
        with pytest.raises(ValueError, match="No stopword list"):
            stopwords_for("klingon")


# ---------------------------------------------------------------------------
# tokenize / CleanedCorpus
# ---------------------------------------------------------------------------


def test_tokenize_splits_on_whitespace() -> None:
    assert tokenize("assault assault dismissed") == ["assault", "assault", "dismissed"]
    assert tokenize("") == []


class TestCleanedCorpus:
    """Tests for the lazy, restartable corpus view."""

    def test_iterates_cleaned_documents(self) -> None:
        corpus = CleanedCorpus(["The case was DISMISSED.", None])
        assert list(corpus) == ["case dismissed", ""]

    def test_restartable(self) -> None:
        corpus = CleanedCorpus(["Charges dropped.", "Pleaded guilty."])
        assert list(corpus) == list(corpus)

    def test_len_and_index(self) -> None:
        corpus = CleanedCorpus(["Charges dropped.", "Pleaded guilty."])
        assert len(corpus) == 2
        assert corpus[1] == "pleaded guilty"
        assert list(corpus[:1]) == ["charges dropped"]

    def test_raw_texts_untouched(self) -> None:
        texts = ["The Case Was Dismissed."]
        list(CleanedCorpus(texts))
        assert texts == ["The Case Was Dismissed."]

    def test_lazy(self) -> None:
        """Nothing is normalized until iteration reaches a bad record."""
        corpus = CleanedCorpus(["Charges dropped.", 7])  # type: ignore[list-item]
        it = iter(corpus)
        assert next(it) == "charges dropped"
        with pytest.raises(MalformedRecordError):
            next(it)

    def test_clean_each_sets_aside_bad_records(self) -> None:
        corpus = CleanedCorpus(["Charges dropped.", 7, "Pleaded guilty.", ["x"]])  # type: ignore[list-item]
        cleaned, kept_ids, rejected = corpus.clean_each(["a", "b", "c", "d"])
        assert cleaned == ["charges dropped", "pleaded guilty"]
        assert kept_ids == ["a", "c"]
        assert [rid for rid, _ in rejected] == ["b", "d"]
        assert all(isinstance(e, MalformedRecordError) for _, e in rejected)

    def test_clean_each_defaults_to_row_indices(self) -> None:
        _, kept_ids, rejected = CleanedCorpus(["Charges dropped.", 7]).clean_each()  # type: ignore[list-item]
        assert kept_ids == [0]
        assert [rid for rid, _ in rejected] == [1]

    def test_clean_each_length_mismatch(self) -> None:
        with pytest.raises(ValueError, match="same length"):
            CleanedCorpus(["Charges dropped."]).clean_each(["a", "b"])
