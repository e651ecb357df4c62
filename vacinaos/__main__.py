#!/usr/bin/env python3
"""
VacinaOS CLI — Pure Python entry point.

Usage:
    python -m vacinaos evaluate <patient.json> [--now YYYY-MM-DD] [--vaccine NAME]
    python -m vacinaos age <YYYY-MM-DD> [--now YYYY-MM-DD]
    python -m vacinaos run-all [patient_dir]
    python -m vacinaos alerts [patient_dir]
    python -m vacinaos validate [--run-fixtures]
    python -m vacinaos help
"""
from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_DATA_DIR = _PROJECT_ROOT / "data_raw"
_OUTPUT_DIR = _PROJECT_ROOT / "outputs" / "vaccination"

_STATUS_MARKS = {
    "complete": "✔",
    "due": "•",
    "blocked": "✖",
}


def _resolve_patient_file(name: str) -> Path:
    """Resolve patient file from name, with or without .json extension."""
    p = Path(name)
    if p.exists():
        return p
    candidate = _DATA_DIR / name
    if candidate.exists():
        return candidate
    if not name.endswith(".json"):
        for candidate in (Path(f"{name}.json"), _DATA_DIR / f"{name}.json"):
            if candidate.exists():
                return candidate
    print(f"Error: Patient file not found: {name}")
    print(f"  Searched: {p}, {_DATA_DIR / name}")
    sys.exit(1)


def _parse_now(value: Optional[str]) -> date:
    from vacinaos.eligibility.build_patient import parse_date

    if not value:
        return date.today()
    parsed = parse_date(value)
    if parsed is None:
        print(f"Error: invalid date: {value}")
        sys.exit(1)
    return parsed


def cmd_evaluate(args: List[str]) -> int:
    """Print the vaccination card for a single patient."""
    ap = argparse.ArgumentParser(prog="vacinaos evaluate")
    ap.add_argument("patient")
    ap.add_argument("--now", help="Evaluation date (default: today)")
    ap.add_argument("--catalog", help="Vaccine catalog JSON")
    ap.add_argument("--vaccine", help="Only evaluate this vaccine (catalog name)")
    ap.add_argument("--no-write", action="store_true", help="Do not write the JSON card")
    opts = ap.parse_args(args)

    from vacinaos.eligibility.age import compute_age
    from vacinaos.eligibility.build_patient import audit_record, build_patient_record
    from vacinaos.eligibility.catalog_loader import load_catalog
    from vacinaos.eligibility.engine import evaluate_card, summarize_card, write_card
    from vacinaos.governance.failure_log import FailureLog

    patient_path = _resolve_patient_file(opts.patient)
    now = _parse_now(opts.now)
    catalog = load_catalog(Path(opts.catalog) if opts.catalog else None)
    record = build_patient_record(patient_path)
    patient = record.patient

    vaccines = catalog.vaccines
    if opts.vaccine:
        v = catalog.by_name(opts.vaccine)
        if v is None:
            print(f"Error: vaccine not in catalog: {opts.vaccine}")
            return 1
        vaccines = [v]

    log = FailureLog(_PROJECT_ROOT / "outputs" / "failure_log.jsonl")
    logged = audit_record(record, now, log, catalog=catalog, command=f"evaluate {patient_path.name}")

    age = compute_age(patient.date_of_birth, now)
    print(f"VacinaOS -- {patient.name or patient.patient_id or patient_path.stem}")
    print(f"  Age on {now.isoformat()}: {age.years} anos, {age.months} meses, {age.days} dias")
    if logged:
        print(f"  {logged} data-quality issue(s) logged to {log.path}")
    print()

    entries = evaluate_card(patient, vaccines, record.history, now)
    for e in entries:
        mark = _STATUS_MARKS.get(e.verdict.status.value, "?")
        print(f"  {mark} {e.vaccine.name:<20} {e.verdict.label:<28} "
              f"({e.verdict.doses_taken}/{e.vaccine.total_doses_in_scheme})")
    print()
    print(f"  {summarize_card(entries)}")

    if not opts.no_write:
        card_path = _OUTPUT_DIR / f"{patient_path.stem}_card.json"
        write_card(patient, entries, now, card_path)
        print(f"  JSON:  {card_path}")
    return 0


def cmd_age(args: List[str]) -> int:
    """Print the age breakdown between an anchor date and now."""
    ap = argparse.ArgumentParser(prog="vacinaos age")
    ap.add_argument("anchor", help="Anchor date (birth or delivery date)")
    ap.add_argument("--now", help="Reference date (default: today)")
    opts = ap.parse_args(args)

    from vacinaos.eligibility.age import compute_age

    anchor = _parse_now(opts.anchor)
    now = _parse_now(opts.now)
    age = compute_age(anchor, now)
    print(f"{age.years}y {age.months}m {age.days}d")
    print(f"  total months: {age.total_months}")
    print(f"  approx days:  {age.approx_total_days}")
    print(f"  approx weeks: {age.approx_weeks}")
    return 0


def cmd_run_all(args: List[str]) -> int:
    """Evaluate all patients in data_raw/ (or the given directory)."""
    from vacinaos.ingestion.batch_eval import main as batch_main

    patient_dir = args[0] if args and not args[0].startswith("-") else str(_DATA_DIR)
    rest = args[1:] if args and not args[0].startswith("-") else args
    return batch_main(["--patient-dir", patient_dir, "--output-dir", str(_OUTPUT_DIR), *rest])


def cmd_alerts(args: List[str]) -> int:
    """List due doses for all patients in data_raw/ (or the given directory)."""
    from vacinaos.ingestion.batch_eval import main as batch_main

    patient_dir = args[0] if args and not args[0].startswith("-") else str(_DATA_DIR)
    rest = args[1:] if args and not args[0].startswith("-") else args
    return batch_main(["--patient-dir", patient_dir, "--alerts-only", *rest])


def cmd_validate(args: List[str]) -> int:
    """Validate the vaccine catalog (and fixtures)."""
    from vacinaos.validation.validate_catalog import main as validate_main

    return validate_main(args)


def cmd_help(args: List[str]) -> int:
    """Show help."""
    print("VacinaOS Eligibility Engine")
    print()
    print("Usage: python -m vacinaos <command> [args]")
    print()
    print("Commands:")
    print("  evaluate <patient.json>  Vaccination card for one patient")
    print("  age <date>               Age breakdown from a date to today (or --now)")
    print("  run-all [dir]            Evaluate all patients in data_raw/ (or dir)")
    print("  alerts [dir]             List pending doses for all patients")
    print("  validate                 Validate the vaccine catalog (--run-fixtures)")
    print("  help                     Show this help message")
    print()
    print("Examples:")
    print("  python -m vacinaos evaluate P001.json --now 2025-03-01")
    print("  python -m vacinaos evaluate P001 --vaccine BCG")
    print("  python -m vacinaos age 2024-01-31 --now 2024-03-01")
    print("  python -m vacinaos alerts")
    print()
    return 0


_COMMANDS = {
    "evaluate": cmd_evaluate,
    "age": cmd_age,
    "run-all": cmd_run_all,
    "alerts": cmd_alerts,
    "validate": cmd_validate,
    "help": cmd_help,
}


def main() -> int:
    args = sys.argv[1:]
    if not args:
        return cmd_help([])

    command = args[0].lower()
    handler = _COMMANDS.get(command)
    if handler is None:
        print(f"Unknown command: {command}")
        print()
        return cmd_help([])

    return handler(args[1:])


if __name__ == "__main__":
    raise SystemExit(main())
