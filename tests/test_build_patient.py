from datetime import date

import pytest

from vacinaos.eligibility.build_patient import (
    PatientRecord,
    audit_record,
    build_history,
    build_patient,
    build_patient_record,
    parse_date,
)
from vacinaos.eligibility.model import Sex
from vacinaos.governance.failure_log import FailureLog

from conftest import NOW, make_patient, write_patient_file


def test_parse_date_formats():
    assert parse_date("2024-02-29") == date(2024, 2, 29)
    assert parse_date("2024-02-29T10:00:00") == date(2024, 2, 29)
    assert parse_date("2024-02-29 10:00:00") == date(2024, 2, 29)
    assert parse_date("29/02/2024") == date(2024, 2, 29)
    assert parse_date("") is None
    assert parse_date(None) is None
    assert parse_date("yesterday") is None


def test_build_record_from_export(tmp_path):
    path = write_patient_file(
        tmp_path / "p1.json",
        {
            "patient_id": "P1",
            "name": "Joana",
            "date_of_birth": "2024-11-01",
            "sex": "f",
            "postpartum": False,
        },
        [{"vaccine_id": 13, "dose_number": 1, "administered_on": "2024-12-15"}],
    )
    record = build_patient_record(path)
    assert record.source == path
    assert record.patient.patient_id == "P1"
    assert record.patient.sex == Sex.FEMALE
    assert record.patient.date_of_birth == date(2024, 11, 1)
    assert len(record.history) == 1
    h = record.history[0]
    assert (h.patient_id, h.vaccine_id, h.dose_number, h.administered_on) == ("P1", 13, 1, date(2024, 12, 15))


def test_registry_column_names():
    patient = build_patient({
        "id": 7,
        "nome": "Maria",
        "data_nascimento": "1990-04-02",
        "sexo": "F",
        "gravida": 0,
        "mulher_idade_fertil": 1,
        "puerpera": "1",
        "data_parto": "2025-02-10",
        "localidade": "Bairro Central",
    })
    assert patient.patient_id == "7"
    assert patient.fertile_age_woman is True
    assert patient.postpartum is True
    assert patient.pregnant is False
    assert patient.delivery_date == date(2025, 2, 10)
    assert patient.locality == "Bairro Central"

    history = build_history([{"vacina_id": "19", "numero_dose": 1, "data_administracao": "2025-02-11"}], patient_id="7")
    assert history[0].vaccine_id == 19
    assert history[0].patient_id == "7"


def test_unparseable_optional_fields_become_none():
    patient = build_patient({"date_of_birth": "2020-01-01", "sex": "M", "delivery_date": "soon"})
    assert patient.delivery_date is None
    history = build_history([{"vaccine_id": "abc", "dose_number": "x"}, "junk"])
    assert len(history) == 1
    assert history[0].vaccine_id is None
    assert history[0].dose_number == 1


def test_missing_birth_date_is_fatal():
    with pytest.raises(SystemExit, match="date_of_birth"):
        build_patient({"sex": "F"})


def test_invalid_sex_is_fatal():
    with pytest.raises(SystemExit, match="sex"):
        build_patient({"date_of_birth": "2020-01-01", "sex": "X"})


def test_missing_file_and_missing_patient(tmp_path):
    with pytest.raises(SystemExit, match="not found"):
        build_patient_record(tmp_path / "nope.json")
    empty = tmp_path / "empty.json"
    empty.write_text("{}", encoding="utf-8")
    with pytest.raises(SystemExit, match="missing patient"):
        build_patient_record(empty)


def test_missing_history_means_no_doses(tmp_path):
    path = write_patient_file(tmp_path / "p.json", {"date_of_birth": "2020-01-01", "sex": "M"})
    assert build_patient_record(path).history == []


def test_audit_logs_anomalies(tmp_path, catalog):
    log = FailureLog(tmp_path / "failure_log.jsonl")
    patient = make_patient(date(2025, 4, 1), delivery_date=date(2025, 5, 1))
    history = build_history([{"vaccine_id": 999}, {"vaccine_name": "Ghost"}, {"vaccine_id": 1}])
    logged = audit_record(PatientRecord(patient=patient, history=history), NOW, log, catalog=catalog, command="test")
    # birth after now, delivery without postpartum, delivery after now, two unknown vaccines
    assert logged == 5
    assert log.count() == 5
    assert log.summary() == {"data_quality": 3, "reference": 2}


def test_audit_clean_record_logs_nothing(tmp_path, catalog):
    log = FailureLog(tmp_path / "failure_log.jsonl")
    patient = make_patient(date(2024, 1, 1))
    logged = audit_record(PatientRecord(patient=patient), NOW, log, catalog=catalog)
    assert logged == 0
    assert not log.path.exists()
