"""Shared test fixtures for case-outcome-classifier tests."""

from __future__ import annotations

import pytest

from case_outcome_classifier.dataset import DatasetSchema
from case_outcome_classifier.preprocessing import ENGLISH_STOP_WORDS, TextNormalizer

GUILTY_TEMPLATES = [
    "Pleaded guilty to misdemeanor {charge}; sentenced to probation and fined.",
    "Convicted of {charge} and sentenced to jail; guilty verdict upheld.",
    "Pleaded guilty to reduced {charge} charge, sentenced to community service and probation.",
]

NOT_GUILTY_TEMPLATES = [
    "Charges of {charge} dropped by prosecutors; case dismissed.",
    "Acquitted of {charge} after jury trial; charges dismissed.",
    "{charge} case dismissed, charges dropped for lack of evidence.",
]

CHARGES = ["assault", "DUI", "battery", "disorderly conduct", "drug possession"]


def make_records(n_per_class: int, label_guilty=1, label_not_guilty=0) -> list[dict]:
    """Interleaved guilty / not-guilty outcome records."""
    records = []
    for i in range(n_per_class):
        charge = CHARGES[i % len(CHARGES)]
        records.append({
            "OUTCOME": GUILTY_TEMPLATES[i % 3].format(charge=charge),
            "GUILTY": label_guilty,
        })
        records.append({
            "OUTCOME": NOT_GUILTY_TEMPLATES[i % 3].format(charge=charge),
            "GUILTY": label_not_guilty,
        })
    return records


@pytest.fixture
def schema() -> DatasetSchema:
    return DatasetSchema(text_field="OUTCOME", label_field="GUILTY")


@pytest.fixture
def arrest_records() -> list[dict]:
    """Sixty labeled narratives, thirty per verdict."""
    return make_records(30)


@pytest.fixture
def unlabeled_records() -> list[dict]:
    """Five guilty-looking and five not-guilty-looking narratives without labels."""
    return make_records(5, label_guilty="", label_not_guilty="")


@pytest.fixture
def keep_not_normalizer() -> TextNormalizer:
    """English stopwords minus "not", so "not guilty" keeps its negation."""
    return TextNormalizer(stopwords=ENGLISH_STOP_WORDS - {"not"})


@pytest.fixture
def plea_corpus() -> tuple[list[str], list[int]]:
    """Ten cleaned documents: six not guilty, four guilty."""
    docs = ["not guilty contact resolved"] * 6 + ["guilty plea entered"] * 4
    labels = [0] * 6 + [1] * 4
    return docs, labels
