"""Pipeline error taxonomy.

All errors derive from :class:`CaseOutcomeError` (itself a ``ValueError``)
and carry the identifiers of the records that triggered them, so callers can
report which validation failed and how many records were affected.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Hashable


class CaseOutcomeError(ValueError):
    """Base class for validation failures that abort a run."""

    def __init__(self, message: str, record_ids: Iterable[Hashable] = ()) -> None:
        super().__init__(message)
        self.record_ids: list[Hashable] = list(record_ids)

    @property
    def count(self) -> int:
        """Number of records affected by this failure."""
        return len(self.record_ids)


class InvalidLabelError(CaseOutcomeError):
    """A training document has a label outside {0, 1}."""


class EmptyClassError(CaseOutcomeError):
    """The training split has no documents for one of the two classes."""


class EmptyVocabularyError(CaseOutcomeError):
    """Frequency pruning removed every training term."""


class MalformedRecordError(CaseOutcomeError):
    """A record is missing its text or label field, or its text is not text."""
