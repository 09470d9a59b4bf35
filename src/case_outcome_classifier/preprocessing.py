"""Text normalization for case-outcome narratives.

Turns a raw narrative into a cleaned, whitespace-delimited bag of terms.
Processing order matters and is fixed:

1. Lowercasing
2. Punctuation deletion (characters are removed, not replaced by spaces)
3. Stopword removal
4. Whitespace collapsing

Step 2 runs before step 3, so contractions such as ``don't`` become
``dont`` and survive the stopword list. Hyphenated words are joined
(``hit-and-run`` -> ``hitandrun``). Both are kept as-is for compatibility
with previously labeled datasets.
"""

from __future__ import annotations

import string
import unicodedata
from collections.abc import Hashable, Iterable, Iterator, Sequence
from typing import Optional

from .errors import MalformedRecordError

# ---------------------------------------------------------------------------
# Stopwords
# ---------------------------------------------------------------------------

# Snowball English stopword list (the "english" corpus shipped by tm / NLTK).
ENGLISH_STOP_WORDS: frozenset[str] = frozenset(
    """
    i me my myself we our ours ourselves you your yours yourself yourselves
    he him his himself she her hers herself it its itself they them their
    theirs themselves what which who whom this that these those am is are
    was were be been being have has had having do does did doing would
    should could ought i'm you're he's she's it's we're they're i've you've
    we've they've i'd you'd he'd she'd we'd they'd i'll you'll he'll she'll
    we'll they'll isn't aren't wasn't weren't hasn't haven't hadn't doesn't
    don't didn't won't wouldn't shan't shouldn't can't cannot couldn't
    mustn't let's that's who's what's here's there's when's where's why's
    how's a an the and but if or because as until while of at by for with
    about against between into through during before after above below to
    from up down in out on off over under again further then once here
    there when where why how all any both each few more most other some
    such no nor not only own same so than too very
    """.split()
)

_STOP_WORD_LISTS: dict[str, frozenset[str]] = {
    "english": ENGLISH_STOP_WORDS,
    "en": ENGLISH_STOP_WORDS,
}


def stopwords_for(language: str) -> frozenset[str]:
    """Return the built-in stopword list for a language.

    Raises:
        ValueError: If no list ships for the language.
    """
    key = language.strip().lower()
    try:
        return _STOP_WORD_LISTS[key]
    except KeyError:
        known = sorted(_STOP_WORD_LISTS)
        raise ValueError(f"No stopword list for language {language!r}. Known: {known}") from None


def _is_default_punctuation(ch: str) -> bool:
    # ASCII punctuation plus Unicode punctuation and symbol categories.
    if ch in string.punctuation:
        return True
    return unicodedata.category(ch)[0] in ("P", "S")


# ---------------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------------


class TextNormalizer:
    """Lowercase, strip punctuation, drop stopwords, collapse whitespace.

    Stopwords and punctuation are injectable so tests (and other corpora)
    can run against a controlled vocabulary.

    Example::

        normalizer = TextNormalizer()
        normalizer.normalize("Pleaded GUILTY to the assault charge.")
        # -> "pleaded guilty assault charge"

    Args:
        stopwords: Terms removed after punctuation deletion. Defaults to
            the English list.
        punctuation: Characters to delete. Defaults to every ASCII and
            Unicode punctuation or symbol character.
    """

    def __init__(
        self,
        stopwords: Optional[Iterable[str]] = None,
        punctuation: Optional[Iterable[str]] = None,
    ) -> None:
        self.stopwords: frozenset[str] = (
            ENGLISH_STOP_WORDS if stopwords is None else frozenset(w.lower() for w in stopwords)
        )
        self.punctuation: Optional[frozenset[str]] = (
            None if punctuation is None else frozenset(punctuation)
        )
        self._delete_table = (
            None if self.punctuation is None else str.maketrans("", "", "".join(self.punctuation))
        )

    def normalize(self, text: Optional[str]) -> str:
        """Return the cleaned form of a raw narrative.

        ``None`` and empty input produce ``""``.

        Raises:
            MalformedRecordError: If ``text`` is neither a string nor ``None``.
        """
        if text is None:
            return ""
        if not isinstance(text, str):
            raise MalformedRecordError(
                f"Narrative must be text, got {type(text).__name__}"
            )
        if not text:
            return ""

        text = text.lower()
        text = self._strip_punctuation(text)
        # split() also collapses whitespace runs and trims.
        return " ".join(w for w in text.split() if w not in self.stopwords)

    def _strip_punctuation(self, text: str) -> str:
        if self._delete_table is not None:
            return text.translate(self._delete_table)
        return "".join(ch for ch in text if not _is_default_punctuation(ch))


_DEFAULT_NORMALIZER = TextNormalizer()


def normalize(text: Optional[str]) -> str:
    """Normalize text with the default English configuration."""
    return _DEFAULT_NORMALIZER.normalize(text)


def tokenize(cleaned_text: str) -> list[str]:
    """Split a cleaned document into whitespace-delimited terms."""
    return cleaned_text.split()


class CleanedCorpus(Sequence[str]):
    """Lazy, restartable view of cleaned documents.

    Nothing is normalized until the corpus is iterated or indexed, and each
    iteration starts over from the raw texts. The raw texts are never
    modified.
    """

    def __init__(
        self,
        texts: Sequence[Optional[str]],
        normalizer: Optional[TextNormalizer] = None,
    ) -> None:
        self._texts = texts
        self._normalizer = normalizer or _DEFAULT_NORMALIZER

    def __iter__(self) -> Iterator[str]:
        for text in self._texts:
            yield self._normalizer.normalize(text)

    def __len__(self) -> int:
        return len(self._texts)

    def __getitem__(self, index):  # type: ignore[override]
        if isinstance(index, slice):
            return CleanedCorpus(self._texts[index], self._normalizer)
        return self._normalizer.normalize(self._texts[index])

    def clean_each(
        self,
        record_ids: Optional[Sequence[Hashable]] = None,
    ) -> tuple[list[str], list[Hashable], list[tuple[Hashable, MalformedRecordError]]]:
        """Normalize every document, setting aside the ones that cannot be.

        Args:
            record_ids: Identifiers parallel to the texts; row indices when
                omitted.

        Returns:
            ``(cleaned, kept_ids, rejected)`` where ``cleaned`` and
            ``kept_ids`` are parallel and ``rejected`` pairs each failed
            record id with its error, all in input order.
        """
        ids = list(record_ids) if record_ids is not None else list(range(len(self._texts)))
        if len(ids) != len(self._texts):
            raise ValueError(
                f"record_ids ({len(ids)}) and texts ({len(self._texts)}) must have same length"
            )

        cleaned: list[str] = []
        kept_ids: list[Hashable] = []
        rejected: list[tuple[Hashable, MalformedRecordError]] = []
        for rid, text in zip(ids, self._texts):
            try:
                cleaned.append(self._normalizer.normalize(text))
            except MalformedRecordError as e:
                rejected.append((rid, e))
                continue
            kept_ids.append(rid)
        return cleaned, kept_ids, rejected
