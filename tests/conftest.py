from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from vacinaos.eligibility.catalog_loader import load_catalog
from vacinaos.eligibility.model import (
    Administration,
    Patient,
    Sex,
    TargetGroup,
    Vaccine,
    VaccineKind,
)

NOW = date(2025, 3, 1)


@pytest.fixture(scope="session")
def catalog():
    return load_catalog()


@pytest.fixture
def now() -> date:
    return NOW


def make_patient(
    dob: date,
    sex: Sex = Sex.FEMALE,
    postpartum: bool = False,
    delivery_date: Optional[date] = None,
    pregnant: bool = False,
) -> Patient:
    return Patient(
        patient_id="T-1",
        date_of_birth=dob,
        sex=sex,
        pregnant=pregnant,
        postpartum=postpartum,
        delivery_date=delivery_date,
    )


def make_vaccine(
    kind: VaccineKind,
    target_group: TargetGroup = TargetGroup.CHILD,
    total: int = 1,
    vaccine_id: int = 100,
    name: str = "Test",
) -> Vaccine:
    return Vaccine(
        vaccine_id=vaccine_id,
        name=name,
        kind=kind,
        target_group=target_group,
        total_doses_in_scheme=total,
    )


def doses(vaccine: Vaccine, n: int) -> List[Administration]:
    return [
        Administration(patient_id="T-1", vaccine_id=vaccine.vaccine_id, dose_number=i + 1)
        for i in range(n)
    ]


def write_patient_file(path: Path, patient: Dict[str, Any], history: Optional[List[Dict[str, Any]]] = None) -> Path:
    payload: Dict[str, Any] = {"patient": patient}
    if history is not None:
        payload["history"] = history
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path
