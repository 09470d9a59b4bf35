"""Pipeline configuration.

Options can be set in code or through ``CASE_OUTCOME_*`` environment
variables (a ``.env`` file in the working directory is honoured)::

    CASE_OUTCOME_MIN_DOC_FREQ=5
    CASE_OUTCOME_TRAIN_FRACTION=0.6
    CASE_OUTCOME_RANDOM_SEED=42
    CASE_OUTCOME_STOPWORD_LANGUAGE=english
    CASE_OUTCOME_LOG_SPACE=false
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .preprocessing import TextNormalizer, stopwords_for
from .vocabulary import DEFAULT_MIN_DOC_FREQ

ENV_PREFIX = "CASE_OUTCOME_"

DEFAULT_TRAIN_FRACTION = 0.6
DEFAULT_RANDOM_SEED = 42
DEFAULT_STOPWORD_LANGUAGE = "english"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable settings for one training/evaluation run.

    Attributes:
        min_doc_freq: Minimum document frequency for a term to be kept.
        train_fraction: Share of shuffled labeled rows used for training.
        random_seed: Seed for the evaluation shuffle.
        stopword_language: Built-in stopword list to use.
        stopwords: Explicit stopword set; overrides ``stopword_language``.
        punctuation: Explicit set of characters to delete.
        log_space: Score in log space instead of direct products.
    """

    min_doc_freq: int = DEFAULT_MIN_DOC_FREQ
    train_fraction: float = DEFAULT_TRAIN_FRACTION
    random_seed: int = DEFAULT_RANDOM_SEED
    stopword_language: str = DEFAULT_STOPWORD_LANGUAGE
    stopwords: Optional[frozenset[str]] = None
    punctuation: Optional[frozenset[str]] = None
    log_space: bool = False

    def __post_init__(self) -> None:
        if self.min_doc_freq < 1:
            raise ValueError(f"min_doc_freq must be >= 1, got {self.min_doc_freq}")
        if not 0 < self.train_fraction < 1:
            raise ValueError(
                f"train_fraction must be between 0 and 1 (exclusive), got {self.train_fraction}"
            )
        if self.stopwords is None:
            # Fail on an unknown language now rather than mid-run.
            stopwords_for(self.stopword_language)
        else:
            object.__setattr__(self, "stopwords", frozenset(self.stopwords))
        if self.punctuation is not None:
            object.__setattr__(self, "punctuation", frozenset(self.punctuation))

    def normalizer(self) -> TextNormalizer:
        """Build the text normalizer described by this configuration."""
        stopwords = (
            self.stopwords if self.stopwords is not None
            else stopwords_for(self.stopword_language)
        )
        return TextNormalizer(stopwords=stopwords, punctuation=self.punctuation)

    def to_dict(self) -> dict:
        return {
            "min_doc_freq": self.min_doc_freq,
            "train_fraction": self.train_fraction,
            "random_seed": self.random_seed,
            "stopword_language": self.stopword_language,
            "log_space": self.log_space,
        }

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides,
    ) -> "PipelineConfig":
        """Read settings from the environment, then apply explicit overrides.

        ``overrides`` with a value of ``None`` are ignored, so CLI options
        that were not given fall through to the environment.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        values: dict = {}
        parsers = {
            "min_doc_freq": int,
            "train_fraction": float,
            "random_seed": int,
            "stopword_language": str,
            "log_space": lambda v: v.strip().lower() in _TRUE_VALUES,
        }
        for name, parse in parsers.items():
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is not None and raw.strip():
                try:
                    values[name] = parse(raw)
                except ValueError:
                    raise ValueError(
                        f"Invalid value for {ENV_PREFIX + name.upper()}: {raw!r}"
                    ) from None

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
