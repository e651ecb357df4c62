import json

from vacinaos.governance.failure_log import (
    FailureEntry,
    FailureLog,
    log_delivery_without_postpartum,
    log_unknown_vaccine_reference,
)


def test_append_and_read_back(tmp_path):
    log = FailureLog(tmp_path / "logs" / "failure_log.jsonl")
    log_delivery_without_postpartum(log, "P1", "2025-01-01", command="evaluate P1.json")
    log_unknown_vaccine_reference(log, "P1", 404)

    entries = log.read_all()
    assert len(entries) == 2
    assert entries[0].section == "delivery_date"
    assert entries[0].command == "evaluate P1.json"
    assert entries[1].category == "reference"
    assert entries[1].vaccine_id == 404
    assert log.summary() == {"data_quality": 1, "reference": 1}


def test_none_fields_are_omitted(tmp_path):
    log = FailureLog(tmp_path / "failure_log.jsonl")
    log.append(FailureEntry(
        timestamp="2025-03-01T00:00:00",
        section="catalog",
        category="structural",
        description="example",
        command="",
        detection_source="diagnostic",
    ))
    record = json.loads(log.path.read_text(encoding="utf-8").strip())
    assert "patient_id" not in record
    assert "metadata" not in record


def test_malformed_lines_are_skipped(tmp_path):
    path = tmp_path / "failure_log.jsonl"
    log = FailureLog(path)
    log_unknown_vaccine_reference(log, None, "Ghost")
    with open(path, "a", encoding="utf-8") as f:
        f.write("not json\n\n")
    assert log.count() == 2
    assert len(log.read_all()) == 1
    assert log.read_all()[0].vaccine_id is None


def test_missing_log_is_empty(tmp_path):
    log = FailureLog(tmp_path / "none.jsonl")
    assert log.read_all() == []
    assert log.count() == 0
    assert log.summary() == {}
