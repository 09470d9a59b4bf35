"""Record schema, validation, and flat-file record I/O.

Records are plain mappings (one per row of the source dataset). A
:class:`DatasetSchema` names the narrative and label columns once, and
:func:`to_documents` validates every record against it before any training
starts, collecting all problems into a single error.
"""

from __future__ import annotations

import csv
import json
import math
from collections.abc import Hashable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .errors import InvalidLabelError, MalformedRecordError
from .models import Document, Verdict

Record = Mapping[str, Any]

DEFAULT_UNLABELED_VALUES: frozenset[str] = frozenset(
    {"", "unknown", "na", "nan", "none", "null"}
)


@dataclass(frozen=True)
class DatasetSchema:
    """Explicit description of the columns the pipeline reads.

    Attributes:
        text_field: Column holding the outcome narrative.
        label_field: Column holding 0, 1, or an unlabeled sentinel.
        id_field: Optional column used as record identifier. Row indices
            are used when unset.
        unlabeled_values: Case-insensitive strings that mean "no label".
            ``None`` and float NaN are always treated as unlabeled.
    """

    text_field: str
    label_field: str
    id_field: Optional[str] = None
    unlabeled_values: frozenset[str] = field(default=DEFAULT_UNLABELED_VALUES)

    def is_unlabeled(self, value: Any) -> bool:
        if value is None:
            return True
        if isinstance(value, float) and math.isnan(value):
            return True
        return isinstance(value, str) and value.strip().lower() in self.unlabeled_values

    def parse_label(self, value: Any) -> Optional[Verdict]:
        """Interpret a raw label cell.

        Returns:
            The verdict, or ``None`` for an unlabeled sentinel.

        Raises:
            InvalidLabelError: For any other value.
        """
        if self.is_unlabeled(value):
            return None
        if isinstance(value, Verdict):
            return value
        if isinstance(value, bool):
            return Verdict(int(value))
        if isinstance(value, (int, float)):
            if value in (0, 1):
                return Verdict(int(value))
        elif isinstance(value, str):
            try:
                number = float(value.strip())
            except ValueError:
                number = None
            if number in (0, 1):
                return Verdict(int(number))  # type: ignore[arg-type]
        raise InvalidLabelError(f"Label must be 0, 1 or unlabeled, got {value!r}")


def to_documents(
    records: Sequence[Record],
    schema: DatasetSchema,
    require_label: bool = True,
) -> list[Document]:
    """Validate records and convert them to :class:`Document` objects.

    Args:
        records: Source rows.
        schema: Column description.
        require_label: When False, a missing label column means unlabeled.

    Raises:
        MalformedRecordError: If any record lacks a required field, or two
            records share an id. Raised before label problems so all
            structural issues surface first.
        InvalidLabelError: If any label is neither 0, 1 nor a sentinel.
    """
    missing: list[Hashable] = []
    seen: set[Hashable] = set()
    duplicates: list[Hashable] = []
    bad_labels: list[Hashable] = []
    documents: list[Document] = []

    for index, record in enumerate(records):
        rid = _record_id(record, index, schema)
        if rid in seen:
            if rid not in duplicates:
                duplicates.append(rid)
        else:
            seen.add(rid)
        if schema.text_field not in record or (
            require_label and schema.label_field not in record
        ):
            missing.append(rid)
            continue
        try:
            label = schema.parse_label(record.get(schema.label_field))
        except InvalidLabelError:
            bad_labels.append(rid)
            continue
        documents.append(Document(record_id=rid, text=record[schema.text_field], label=label))

    if missing:
        fields = [schema.text_field] + ([schema.label_field] if require_label else [])
        raise MalformedRecordError(
            f"{len(missing)} record(s) missing required field(s) {fields}", missing
        )
    if duplicates:
        raise MalformedRecordError(
            f"{len(duplicates)} record id(s) appear more than once in field "
            f"{schema.id_field!r}",
            duplicates,
        )
    if bad_labels:
        raise InvalidLabelError(
            f"{len(bad_labels)} record(s) have a label outside {{0, 1}} "
            f"in field {schema.label_field!r}",
            bad_labels,
        )
    return documents


def _record_id(record: Record, index: int, schema: DatasetSchema) -> Hashable:
    if schema.id_field is None:
        return index
    value = record.get(schema.id_field)
    return index if value is None else value


def split_labeled(documents: Iterable[Document]) -> tuple[list[Document], list[Document]]:
    """Partition documents into (labeled, unlabeled)."""
    labeled: list[Document] = []
    unlabeled: list[Document] = []
    for doc in documents:
        (labeled if doc.is_labeled else unlabeled).append(doc)
    return labeled, unlabeled


def apply_predictions(
    records: Sequence[Record],
    predictions: Mapping[Hashable, Verdict],
    schema: DatasetSchema,
) -> list[dict]:
    """Return copies of ``records`` with predicted labels filled in.

    Only rows whose own label is an unlabeled sentinel (or absent) are
    stamped; labeled rows keep their value. The input records are not
    modified.
    """
    augmented = []
    for index, record in enumerate(records):
        row = dict(record)
        if not schema.is_unlabeled(record.get(schema.label_field)):
            augmented.append(row)
            continue
        rid = _record_id(record, index, schema)
        if rid in predictions:
            row[schema.label_field] = int(predictions[rid])
        augmented.append(row)
    return augmented


# ---------------------------------------------------------------------------
# Flat-file I/O
# ---------------------------------------------------------------------------

SUPPORTED_FORMATS = (".csv", ".json", ".jsonl")


def check_format(path: Path) -> str:
    """Return the lower-cased suffix of ``path`` or reject unsupported formats."""
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_FORMATS:
        raise ValueError(
            f"Unsupported dataset format '{path.suffix}'. "
            f"Supported formats: {', '.join(SUPPORTED_FORMATS)}"
        )
    return suffix


def load_records(path: str | Path) -> list[dict]:
    """Read records from a CSV, JSON (array of objects) or JSON Lines file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the format is unsupported or a JSON file is not an
            array of objects.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    suffix = check_format(path)

    if suffix == ".csv":
        with open(path, "r", encoding="utf-8", newline="") as f:
            return [dict(row) for row in csv.DictReader(f)]

    if suffix == ".jsonl":
        with open(path, "r", encoding="utf-8") as f:
            records = [json.loads(line) for line in f if line.strip()]
    else:
        with open(path, "r", encoding="utf-8") as f:
            records = json.load(f)
        if not isinstance(records, list):
            raise ValueError(f"{path.name}: expected a JSON array of records")

    if not all(isinstance(r, dict) for r in records):
        raise ValueError(f"{path.name}: every record must be a JSON object")
    return records


def save_records(records: Sequence[Record], path: str | Path) -> None:
    """Write records in the format implied by the file extension."""
    path = Path(path)
    suffix = check_format(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if suffix == ".csv":
        fieldnames: list[str] = []
        for record in records:
            for key in record:
                if key not in fieldnames:
                    fieldnames.append(key)
        with open(path, "w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(records)
    elif suffix == ".jsonl":
        with open(path, "w", encoding="utf-8") as f:
            for record in records:
                f.write(json.dumps(record) + "\n")
    else:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(list(records), f, indent=2)
