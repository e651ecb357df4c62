#!/usr/bin/env python3
"""
VacinaOS Governance Failure Log — append-only observational record.

Records data-quality issues detected while building eligibility inputs.
Never modifies evaluation behavior — purely observational.

Storage: JSON Lines format (one JSON object per line) at outputs/failure_log.jsonl

Categories:
- data_quality: Patient or history data contradicts itself or the clock
- reference: History references something the catalog does not know
- structural: File or configuration structural issue

Detection sources:
- execution: Detected during normal evaluation run
- diagnostic: Detected during catalog validation
"""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass
class FailureEntry:
    """A single governance failure record."""
    timestamp: str           # ISO 8601 timestamp
    section: str             # Check that fired (e.g., "delivery_date", "birth_date")
    category: str            # "data_quality", "reference", "structural"
    description: str         # Factual, non-interpretive description
    command: str             # Triggering command or context (e.g., "evaluate P001.json")
    detection_source: str    # "execution", "diagnostic"
    patient_id: Optional[str] = None
    vaccine_id: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


_DEFAULT_LOG_PATH = Path("outputs") / "failure_log.jsonl"


class FailureLog:
    """
    Append-only governance failure log.

    Safe for single-process usage (file append is atomic on most OSes).
    """

    def __init__(self, log_path: Optional[Path] = None):
        self._path = log_path or _DEFAULT_LOG_PATH

    @property
    def path(self) -> Path:
        return self._path

    def append(self, entry: FailureEntry) -> None:
        """Append a failure entry to the log file."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        record = asdict(entry)
        record = {k: v for k, v in record.items() if v is not None}
        with open(self._path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, default=str, ensure_ascii=False) + "\n")

    def read_all(self) -> List[FailureEntry]:
        """Read all failure entries from the log file."""
        if not self._path.exists():
            return []

        entries: List[FailureEntry] = []
        with open(self._path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError:
                    continue  # Skip malformed lines
                entries.append(FailureEntry(
                    timestamp=data.get("timestamp", ""),
                    section=data.get("section", ""),
                    category=data.get("category", ""),
                    description=data.get("description", ""),
                    command=data.get("command", ""),
                    detection_source=data.get("detection_source", ""),
                    patient_id=data.get("patient_id"),
                    vaccine_id=data.get("vaccine_id"),
                    metadata=data.get("metadata"),
                ))

        return entries

    def count(self) -> int:
        """Count total entries without loading all into memory."""
        if not self._path.exists():
            return 0
        count = 0
        with open(self._path, "r", encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    count += 1
        return count

    def summary(self) -> Dict[str, int]:
        """Return counts by category."""
        counts: Dict[str, int] = {}
        for entry in self.read_all():
            counts[entry.category] = counts.get(entry.category, 0) + 1
        return counts


# ---------------------------------------------------------------------------
# Convenience functions for common failure types
# ---------------------------------------------------------------------------

def log_date_after_evaluation(
    log: FailureLog,
    patient_id: Optional[str],
    field_name: str,
    value: str,
    evaluated_on: str,
    command: str = "",
) -> None:
    """Log a patient date that lies after the evaluation date."""
    log.append(FailureEntry(
        timestamp=datetime.now().isoformat(),
        section=field_name,
        category="data_quality",
        description=f"{field_name} {value} is after evaluation date {evaluated_on}",
        command=command,
        detection_source="execution",
        patient_id=patient_id,
        metadata={"value": value, "evaluated_on": evaluated_on},
    ))


def log_delivery_without_postpartum(
    log: FailureLog,
    patient_id: Optional[str],
    delivery_date: str,
    command: str = "",
) -> None:
    """Log a delivery date recorded on a patient not flagged postpartum."""
    log.append(FailureEntry(
        timestamp=datetime.now().isoformat(),
        section="delivery_date",
        category="data_quality",
        description=f"delivery_date {delivery_date} recorded but patient is not postpartum",
        command=command,
        detection_source="execution",
        patient_id=patient_id,
    ))


def log_unknown_vaccine_reference(
    log: FailureLog,
    patient_id: Optional[str],
    vaccine_ref: Any,
    command: str = "",
) -> None:
    """Log a history record pointing at a vaccine absent from the catalog."""
    vaccine_id = vaccine_ref if isinstance(vaccine_ref, int) else None
    log.append(FailureEntry(
        timestamp=datetime.now().isoformat(),
        section="history",
        category="reference",
        description=f"History record references unknown vaccine {vaccine_ref!r}",
        command=command,
        detection_source="execution",
        patient_id=patient_id,
        vaccine_id=vaccine_id,
    ))
