"""Data models for case outcome classification."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Hashable, Optional


class Verdict(int, Enum):
    """Binary guilt label."""

    NOT_GUILTY = 0
    GUILTY = 1

    @property
    def display_name(self) -> str:
        return self.name.replace("_", " ").title()


@dataclass(frozen=True)
class Document:
    """A single case-outcome narrative.

    ``record_id`` is the row index in the source dataset unless the schema
    names an explicit id field. ``label`` is ``None`` for unlabeled records.
    """

    record_id: Hashable
    text: Optional[str]
    label: Optional[Verdict] = None

    @property
    def is_labeled(self) -> bool:
        return self.label is not None


@dataclass(frozen=True)
class ClassificationResult:
    """Predicted verdict for one document along with both class scores."""

    record_id: Hashable
    verdict: Verdict
    score_not_guilty: float
    score_guilty: float

    def to_dict(self) -> dict:
        return {
            "record_id": self.record_id,
            "verdict": int(self.verdict),
            "score_not_guilty": self.score_not_guilty,
            "score_guilty": self.score_guilty,
        }


@dataclass(frozen=True)
class RecordFailure:
    """A record that could not be classified; the rest of the batch proceeds."""

    record_id: Hashable
    error: str

    def to_dict(self) -> dict:
        return {"record_id": self.record_id, "error": self.error}
