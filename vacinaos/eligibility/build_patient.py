#!/usr/bin/env python3
"""
VacinaOS — Build Patient records from registry JSON exports (v1)

Parses a patient export into a Patient and its administration history.

Supported export format:
    {
      "patient": {"patient_id": "...", "date_of_birth": "2024-01-15", "sex": "F", ...},
      "history": [{"vaccine_id": 1, "dose_number": 1, "administered_on": "2024-01-16"}, ...]
    }

Registry column names (data_nascimento, sexo, puerpera, vacina_id, ...) are
accepted and normalized to the English field names.

Design:
- Fail-closed on what the rules cannot do without (file, birth date, sex)
- Optional fields that do not parse become None (never guessed)
- Anomalies are recorded in the governance failure log, never corrected
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from vacinaos.eligibility.age import DateLike, as_date
from vacinaos.eligibility.catalog_loader import Catalog
from vacinaos.eligibility.model import Administration, Patient, Sex
from vacinaos.governance.failure_log import (
    FailureLog,
    log_date_after_evaluation,
    log_delivery_without_postpartum,
    log_unknown_vaccine_reference,
)


_PATIENT_ALIASES: Dict[str, str] = {
    "id": "patient_id",
    "nome": "name",
    "data_nascimento": "date_of_birth",
    "sexo": "sex",
    "gravida": "pregnant",
    "mulher_idade_fertil": "fertile_age_woman",
    "puerpera": "postpartum",
    "data_parto": "delivery_date",
    "localidade": "locality",
    "contacto_responsavel": "contact",
    "numero_identificacao": "identification",
}

_HISTORY_ALIASES: Dict[str, str] = {
    "paciente_id": "patient_id",
    "vacina_id": "vaccine_id",
    "numero_dose": "dose_number",
    "data_administracao": "administered_on",
    "vacina_nome": "vaccine_name",
}

_DATE_PATTERNS = [
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%d %H:%M:%S",
    "%d/%m/%Y",
]


@dataclass
class PatientRecord:
    """A patient together with the administration history loaded for it."""
    patient: Patient
    history: List[Administration] = field(default_factory=list)
    source: Optional[Path] = None


def parse_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, date):
        return as_date(value)
    s = str(value).strip()
    if not s:
        return None
    for fmt in _DATE_PATTERNS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def _parse_bool(value: Any) -> bool:
    # SQLite exports store flags as 0/1
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "sim")
    return bool(value)


def _normalize(obj: Dict[str, Any], aliases: Dict[str, str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in obj.items():
        key = aliases.get(k, k)
        # Canonical keys win over aliases
        if key in out and k != key:
            continue
        out[key] = v
    return out


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def build_patient(raw: Dict[str, Any], source: str = "<patient>") -> Patient:
    data = _normalize(raw, _PATIENT_ALIASES)

    dob = parse_date(data.get("date_of_birth"))
    if dob is None:
        raise SystemExit(f"{source}: patient.date_of_birth missing or invalid")
    try:
        sex = Sex(str(data.get("sex", "")).strip().upper())
    except ValueError:
        raise SystemExit(f"{source}: patient.sex must be 'M' or 'F'")

    return Patient(
        patient_id=_optional_str(data.get("patient_id")),
        date_of_birth=dob,
        sex=sex,
        pregnant=_parse_bool(data.get("pregnant", False)),
        fertile_age_woman=_parse_bool(data.get("fertile_age_woman", False)),
        postpartum=_parse_bool(data.get("postpartum", False)),
        delivery_date=parse_date(data.get("delivery_date")),
        name=_optional_str(data.get("name")),
        locality=_optional_str(data.get("locality")),
        contact=_optional_str(data.get("contact")),
        identification=_optional_str(data.get("identification")),
    )


def build_history(raw: List[Dict[str, Any]], patient_id: Optional[str] = None) -> List[Administration]:
    history: List[Administration] = []
    for item in raw or []:
        if not isinstance(item, dict):
            continue
        data = _normalize(item, _HISTORY_ALIASES)
        try:
            vaccine_id = int(data["vaccine_id"]) if data.get("vaccine_id") is not None else None
        except (TypeError, ValueError):
            vaccine_id = None
        try:
            dose_number = int(data.get("dose_number", 1))
        except (TypeError, ValueError):
            dose_number = 1
        history.append(Administration(
            patient_id=_optional_str(data.get("patient_id")) or patient_id,
            vaccine_id=vaccine_id,
            dose_number=dose_number,
            administered_on=parse_date(data.get("administered_on")),
            vaccine_name=_optional_str(data.get("vaccine_name")),
        ))
    return history


def audit_record(
    record: PatientRecord,
    now: DateLike,
    failure_log: FailureLog,
    catalog: Optional[Catalog] = None,
    command: str = "",
) -> int:
    """Record data-quality anomalies for `record`. Returns how many were logged."""
    p = record.patient
    today = as_date(now)
    logged = 0

    if p.date_of_birth > today:
        log_date_after_evaluation(failure_log, p.patient_id, "date_of_birth",
                                  p.date_of_birth.isoformat(), today.isoformat(), command)
        logged += 1
    if p.delivery_date is not None:
        if not p.postpartum:
            log_delivery_without_postpartum(failure_log, p.patient_id, p.delivery_date.isoformat(), command)
            logged += 1
        if p.delivery_date > today:
            log_date_after_evaluation(failure_log, p.patient_id, "delivery_date",
                                      p.delivery_date.isoformat(), today.isoformat(), command)
            logged += 1

    if catalog is not None:
        for h in record.history:
            if h.vaccine_id is not None:
                known = catalog.by_id(h.vaccine_id) is not None
                ref: Any = h.vaccine_id
            else:
                known = h.vaccine_name is not None and catalog.by_name(h.vaccine_name) is not None
                ref = h.vaccine_name
            if not known:
                log_unknown_vaccine_reference(failure_log, p.patient_id, ref, command)
                logged += 1

    return logged


def build_patient_record(json_path: Path) -> PatientRecord:
    """Parse a registry patient export into a PatientRecord.

    Args:
        json_path: Path to the patient export file

    Returns:
        PatientRecord with the patient and their history

    Note:
        - Missing file, invalid JSON, or no usable birth date/sex is fatal
        - A missing "history" key means no doses recorded
    """
    try:
        obj = json.loads(json_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise SystemExit(f"Patient file not found: {json_path}")
    except json.JSONDecodeError as e:
        raise SystemExit(f"Invalid JSON: {json_path}\n{e}")

    if not isinstance(obj, dict) or not isinstance(obj.get("patient"), dict):
        raise SystemExit(f"{json_path}: missing patient object")

    patient = build_patient(obj["patient"], source=str(json_path))
    history = build_history(obj.get("history", []), patient_id=patient.patient_id)
    return PatientRecord(patient=patient, history=history, source=json_path)
