import json

from vacinaos.validation.validate_catalog import CatalogValidator, main


def test_seed_catalog_and_fixtures_pass(capsys):
    validator = CatalogValidator()
    assert validator.run(run_fixtures=True) == 0
    assert validator.fixture_results
    assert all(fr.passed for fr in validator.fixture_results)
    assert "ALL CHECKS PASSED" in capsys.readouterr().out


def test_entry_errors_and_warnings():
    validator = CatalogValidator()
    result = validator.validate_entry({
        "vaccine_id": 1,
        "name": "Vitamina A",
        "kind": "VITAMIN_A",
        "target_group": "crianca",
        "total_doses_in_scheme": 1,
        "doses_per_vial": 0,
    })
    assert not result.passed
    assert any("doses_per_vial" in e for e in result.errors)
    assert any("usually targets" in w for w in result.warnings)


def test_bad_catalog_fails(tmp_path, capsys):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({
        "meta": {"locked": True},
        "vaccines": [
            {"vaccine_id": 1, "name": "A", "kind": "STANDARD", "target_group": "adulto", "total_doses_in_scheme": 1},
            {"vaccine_id": 1, "name": "A", "kind": "MYSTERY", "target_group": "adulto", "total_doses_in_scheme": 1},
        ],
    }), encoding="utf-8")
    assert main(["--catalog", str(path)]) == 1
    out = capsys.readouterr().out
    assert "Invalid kind: MYSTERY" in out
    assert "Duplicate vaccine_id 1" in out


def test_failing_fixture_is_reported(tmp_path):
    fixtures = tmp_path / "fixtures"
    fixtures.mkdir()
    (fixtures / "wrong.json").write_text(json.dumps({
        "now": "2025-03-01",
        "patient": {"date_of_birth": "2025-03-01", "sex": "F"},
        "expected": {"BCG": "blocked", "Unknown Vaccine": "due"},
    }), encoding="utf-8")
    validator = CatalogValidator(fixtures_dir=fixtures)
    assert validator.run(run_fixtures=True) == 1
    by_vaccine = {fr.vaccine_name: fr for fr in validator.fixture_results}
    assert by_vaccine["BCG"].actual_status == "due"
    assert by_vaccine["Unknown Vaccine"].actual_status == "ERROR"
