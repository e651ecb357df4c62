#!/usr/bin/env python3
"""
Validate the vaccine catalog and eligibility fixtures.

Checks:
1. Catalog JSON structure validity (locked meta, required fields)
2. kind / target_group values are known enum values
3. Scheme and vial sizes are positive, ids and names unique
4. kind agrees with the target group the rules expect for it
5. Eligibility fixtures produce the expected verdicts

Usage:
    python -m vacinaos.validation.validate_catalog
    python -m vacinaos.validation.validate_catalog --run-fixtures
"""
from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from vacinaos.eligibility.catalog_loader import DEFAULT_CATALOG_PATH, REPO_ROOT, load_catalog
from vacinaos.eligibility.model import TargetGroup, VaccineKind


@dataclass
class EntryValidationResult:
    """Result of validating a single catalog entry."""
    vaccine_id: Any
    name: str
    passed: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class FixtureResult:
    """Result of running an eligibility fixture."""
    fixture_path: str
    vaccine_name: str
    expected_status: str
    actual_status: str
    passed: bool
    reason: str = ""


VALID_KINDS = {k.value for k in VaccineKind}
VALID_TARGET_GROUPS = {g.value for g in TargetGroup}

REQUIRED_ENTRY_FIELDS = {"vaccine_id", "name", "kind", "target_group", "total_doses_in_scheme"}

# Target group each vaccine-specific rule was written for
EXPECTED_TARGET_GROUPS = {
    "BCG": {"crianca"},
    "BIRTH_DOSE": {"crianca"},
    "ROTAVIRUS": {"crianca"},
    "PENTA_PNEUMO": {"crianca"},
    "HPV": {"hpv"},
    "TETANUS_TOXOID": {"mif", "gravida"},
    "VITAMIN_A": {"puerpera"},
}


class CatalogValidator:
    """Validator for the vaccine catalog."""

    def __init__(self, catalog_path: Optional[Path] = None, fixtures_dir: Optional[Path] = None):
        self.catalog_path = catalog_path or DEFAULT_CATALOG_PATH
        self.fixtures_dir = fixtures_dir or (REPO_ROOT / "tests" / "fixtures" / "eligibility")

        self.entries: List[Dict[str, Any]] = []
        self.meta: Dict[str, Any] = {}
        self.results: List[EntryValidationResult] = []
        self.fixture_results: List[FixtureResult] = []

    def load_entries(self) -> bool:
        """Load raw catalog entries."""
        try:
            data = json.loads(self.catalog_path.read_text(encoding="utf-8"))
        except Exception as e:
            print(f"  CRITICAL: Failed to load catalog: {e}")
            return False
        self.meta = data.get("meta", {})
        self.entries = data.get("vaccines", [])
        print(f"  Catalog: {len(self.entries)} entries loaded ({self.catalog_path.name})")
        if self.meta.get("locked") is not True:
            print("  CRITICAL: catalog meta.locked must be true")
            return False
        return True

    def validate_entry(self, entry: Dict[str, Any]) -> EntryValidationResult:
        """Validate a single catalog entry."""
        result = EntryValidationResult(
            vaccine_id=entry.get("vaccine_id"),
            name=str(entry.get("name", "UNKNOWN")),
            passed=True,
        )

        missing_fields = REQUIRED_ENTRY_FIELDS - set(entry.keys())
        if missing_fields:
            result.errors.append(f"Missing fields: {sorted(missing_fields)}")
            result.passed = False

        kind = entry.get("kind")
        if kind not in VALID_KINDS:
            result.errors.append(f"Invalid kind: {kind}")
            result.passed = False

        target_group = entry.get("target_group")
        if target_group not in VALID_TARGET_GROUPS:
            result.errors.append(f"Invalid target_group: {target_group}")
            result.passed = False

        for int_field in ("total_doses_in_scheme", "doses_per_vial", "usable_hours_after_opening"):
            if int_field not in entry:
                continue
            value = entry[int_field]
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                result.errors.append(f"{int_field} must be a positive integer (got {value!r})")
                result.passed = False

        expected_groups = EXPECTED_TARGET_GROUPS.get(str(kind))
        if expected_groups and target_group in VALID_TARGET_GROUPS and target_group not in expected_groups:
            result.warnings.append(
                f"kind {kind} usually targets {sorted(expected_groups)}, catalog says {target_group}"
            )

        return result

    def check_uniqueness(self) -> List[str]:
        errors: List[str] = []
        seen_ids: Dict[Any, str] = {}
        seen_names: Dict[str, Any] = {}
        for entry in self.entries:
            vid = entry.get("vaccine_id")
            name = str(entry.get("name", ""))
            if vid in seen_ids:
                errors.append(f"Duplicate vaccine_id {vid}: {seen_ids[vid]!r} and {name!r}")
            else:
                seen_ids[vid] = name
            if name in seen_names:
                errors.append(f"Duplicate name {name!r}")
            else:
                seen_names[name] = vid
        return errors

    def run_fixture(self, fixture_path: Path) -> List[FixtureResult]:
        """Run one fixture file; one result per expected vaccine."""
        from vacinaos.eligibility.build_patient import build_history, build_patient, parse_date
        from vacinaos.eligibility.engine import evaluate

        results: List[FixtureResult] = []
        try:
            data = json.loads(fixture_path.read_text(encoding="utf-8"))
            catalog = load_catalog(self.catalog_path)
            now = parse_date(data.get("now"))
            if now is None:
                raise ValueError("fixture missing 'now'")
            patient = build_patient(data["patient"], source=fixture_path.name)
            history = build_history(data.get("history", []), patient_id=patient.patient_id)
        except (Exception, SystemExit) as e:
            return [FixtureResult(
                fixture_path=fixture_path.name,
                vaccine_name="*",
                expected_status="*",
                actual_status="ERROR",
                passed=False,
                reason=str(e),
            )]

        for vaccine_name, expected in (data.get("expected") or {}).items():
            vaccine = catalog.by_name(vaccine_name)
            if vaccine is None:
                results.append(FixtureResult(
                    fixture_path=fixture_path.name,
                    vaccine_name=vaccine_name,
                    expected_status=str(expected),
                    actual_status="ERROR",
                    passed=False,
                    reason=f"Vaccine {vaccine_name!r} not in catalog",
                ))
                continue
            actual = evaluate(patient, vaccine, history, now).status.value
            passed = actual == expected
            results.append(FixtureResult(
                fixture_path=fixture_path.name,
                vaccine_name=vaccine_name,
                expected_status=str(expected),
                actual_status=actual,
                passed=passed,
                reason="" if passed else f"Expected {expected}, got {actual}",
            ))
        return results

    def run(self, run_fixtures: bool = False) -> int:
        """Run full validation suite."""
        print("=" * 70)
        print("VACCINE CATALOG VALIDATION")
        print("=" * 70)

        print("\n--- Loading Catalog ---")
        if not self.load_entries():
            return 1

        print("\n--- Validating Entries ---")
        for entry in self.entries:
            if not isinstance(entry, dict):
                self.results.append(EntryValidationResult(
                    vaccine_id=None, name="?", passed=False, errors=["Entry is not an object"],
                ))
                continue
            self.results.append(self.validate_entry(entry))

        uniqueness_errors = self.check_uniqueness()
        errors_total = sum(len(r.errors) for r in self.results) + len(uniqueness_errors)
        warnings_total = sum(len(r.warnings) for r in self.results)
        failed_count = sum(1 for r in self.results if not r.passed)

        print(f"\n  Total vaccines: {len(self.entries)}")
        print(f"  Errors: {errors_total}")
        print(f"  Warnings: {warnings_total}")

        if errors_total > 0:
            print("\n--- Errors ---")
            for r in self.results:
                for err in r.errors:
                    print(f"  [FAIL] {r.name}: {err}")
            for err in uniqueness_errors:
                print(f"  [FAIL] catalog: {err}")

        if warnings_total > 0:
            print("\n--- Warnings ---")
            for r in self.results:
                for w in r.warnings:
                    print(f"  [WARN] {r.name}: {w}")

        if run_fixtures:
            print("\n--- Running Eligibility Fixtures ---")
            fixtures = sorted(self.fixtures_dir.glob("*.json")) if self.fixtures_dir.exists() else []
            if not fixtures:
                print("  No fixtures found")
            else:
                print(f"  Found {len(fixtures)} fixtures")
                for fixture_path in fixtures:
                    for fr in self.run_fixture(fixture_path):
                        self.fixture_results.append(fr)
                        status = "PASS" if fr.passed else "FAIL"
                        print(f"  [{status}] {fr.fixture_path} / {fr.vaccine_name}: "
                              f"{fr.actual_status} (expected: {fr.expected_status})")
                        if not fr.passed:
                            print(f"         {fr.reason}")

                fixture_pass = sum(1 for fr in self.fixture_results if fr.passed)
                print(f"\n  Fixtures: {fixture_pass}/{len(self.fixture_results)} passed")

        print("\n" + "=" * 70)
        overall_pass = failed_count == 0 and not uniqueness_errors
        fixture_failures = sum(1 for fr in self.fixture_results if not fr.passed)
        if run_fixtures:
            overall_pass = overall_pass and fixture_failures == 0

        if overall_pass:
            print("RESULT: ALL CHECKS PASSED")
        else:
            print(f"RESULT: {failed_count} entr(ies) failed validation")
            if uniqueness_errors:
                print(f"        {len(uniqueness_errors)} uniqueness error(s)")
            if fixture_failures:
                print(f"        {fixture_failures} fixture check(s) failed")

        print("=" * 70)
        return 0 if overall_pass else 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Validate the vaccine catalog and eligibility fixtures")
    parser.add_argument("--catalog", help="Catalog JSON (default: rules/vaccines/catalog_v1.json)")
    parser.add_argument("--run-fixtures", action="store_true", help="Run eligibility fixtures and check verdicts")
    args = parser.parse_args(argv)

    validator = CatalogValidator(catalog_path=Path(args.catalog) if args.catalog else None)
    return validator.run(run_fixtures=args.run_fixtures)


if __name__ == "__main__":
    sys.exit(main())
