"""Bag-of-words vocabulary with Bernoulli presence features.

Each document is reduced to the *set* of terms it contains: a term that
occurs three times contributes exactly one presence entry. Terms found in
fewer than ``min_doc_freq`` documents are pruned from both the vocabulary
and the presence matrix.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field

from .preprocessing import tokenize

logger = logging.getLogger(__name__)

DEFAULT_MIN_DOC_FREQ = 5


@dataclass(frozen=True)
class Vocabulary:
    """Pruned term set and document-term presence matrix.

    Attributes:
        terms: Terms whose document frequency reached the threshold.
        document_frequency: Number of documents containing each kept term.
        rows: One frozenset of kept terms per input document, in input order.
        min_doc_freq: Threshold the vocabulary was pruned with.
    """

    terms: frozenset[str]
    document_frequency: dict[str, int] = field(repr=False)
    rows: tuple[frozenset[str], ...] = field(repr=False)
    min_doc_freq: int = DEFAULT_MIN_DOC_FREQ

    def __contains__(self, term: object) -> bool:
        return term in self.terms

    def __len__(self) -> int:
        return len(self.terms)

    @property
    def num_documents(self) -> int:
        return len(self.rows)

    @property
    def sorted_terms(self) -> list[str]:
        """Terms in a stable (alphabetical) order for vector layouts."""
        return sorted(self.terms)

    def presence(self, doc_index: int, term: str) -> int:
        """Return 1 if the document contains the (kept) term, else 0."""
        return 1 if term in self.rows[doc_index] else 0

    def presence_vector(self, doc_index: int) -> list[int]:
        """Dense 0/1 row over :attr:`sorted_terms`."""
        row = self.rows[doc_index]
        return [1 if term in row else 0 for term in self.sorted_terms]

    def filter_terms(self, cleaned_text: str) -> frozenset[str]:
        """Distinct terms of a cleaned document that belong to this vocabulary."""
        return frozenset(t for t in tokenize(cleaned_text) if t in self.terms)


def build_vocabulary(
    documents: Iterable[str],
    min_doc_freq: int = DEFAULT_MIN_DOC_FREQ,
) -> Vocabulary:
    """Build a pruned presence vocabulary from cleaned documents.

    Args:
        documents: Cleaned documents (see :mod:`.preprocessing`). Any
            iterable works; it is consumed exactly once.
        min_doc_freq: Minimum number of documents a term must appear in.

    Returns:
        A :class:`Vocabulary`. It may be empty; callers that need terms
        decide whether that is an error.

    Raises:
        ValueError: If ``min_doc_freq`` is less than 1.
    """
    if min_doc_freq < 1:
        raise ValueError(f"min_doc_freq must be >= 1, got {min_doc_freq}")

    raw_rows: list[frozenset[str]] = []
    doc_freq: Counter[str] = Counter()
    for doc in documents:
        unique_terms = frozenset(tokenize(doc))
        raw_rows.append(unique_terms)
        doc_freq.update(unique_terms)

    kept = frozenset(term for term, df in doc_freq.items() if df >= min_doc_freq)
    rows = tuple(row & kept for row in raw_rows)

    logger.debug(
        "Vocabulary: %d documents, %d distinct terms, %d kept at min_doc_freq=%d",
        len(rows), len(doc_freq), len(kept), min_doc_freq,
    )

    return Vocabulary(
        terms=kept,
        document_frequency={term: doc_freq[term] for term in kept},
        rows=rows,
        min_doc_freq=min_doc_freq,
    )
