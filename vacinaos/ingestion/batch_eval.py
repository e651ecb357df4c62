#!/usr/bin/env python3
"""
VacinaOS Batch Eligibility Evaluator.

Evaluates patient export files against every vaccine in the catalog, writes
one vaccination card per patient and lists the doses that are due.

Usage:
    python -m vacinaos.ingestion.batch_eval --patient data_raw/P001.json
    python -m vacinaos.ingestion.batch_eval --patient-dir data_raw/ --now 2025-03-01
    python -m vacinaos.ingestion.batch_eval --patient-dir data_raw/ --alerts-only
"""
from __future__ import annotations

import argparse
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from vacinaos.eligibility.age import DateLike, as_date
from vacinaos.eligibility.build_patient import (
    PatientRecord,
    audit_record,
    build_patient_record,
    parse_date,
)
from vacinaos.eligibility.catalog_loader import Catalog, load_catalog
from vacinaos.eligibility.engine import (
    CardEntry,
    card_payload,
    evaluate_card,
    write_card,
)
from vacinaos.eligibility.model import Status
from vacinaos.governance.failure_log import FailureLog

DEFAULT_OUTPUT_DIR = Path("outputs") / "vaccination"


def evaluate_record(record: PatientRecord, catalog: Catalog, now: DateLike) -> Dict[str, Any]:
    """Evaluate one patient against the whole catalog."""
    entries = evaluate_card(record.patient, catalog.vaccines, record.history, now)
    payload = card_payload(record.patient, entries, now)
    payload["patient_name"] = record.patient.name
    payload["source"] = str(record.source) if record.source else None
    return {"record": record, "entries": entries, "payload": payload}


def due_alerts(record: PatientRecord, entries: Sequence[CardEntry]) -> List[Dict[str, Any]]:
    """One alert line per vaccine whose next dose is due."""
    who = record.patient.name or record.patient.patient_id or "?"
    alerts: List[Dict[str, Any]] = []
    for e in entries:
        if e.verdict.status != Status.DUE:
            continue
        dose = e.verdict.doses_taken + 1
        alerts.append({
            "level": "ATENÇÃO",
            "type": "Dose Pendente",
            "patient_id": record.patient.patient_id,
            "vaccine_id": e.vaccine.vaccine_id,
            "dose_number": dose,
            "message": f"{who} — dose {dose} de {e.vaccine.name} pendente",
        })
    return alerts


def run_batch(
    patient_files: Sequence[Path],
    catalog: Catalog,
    now: DateLike,
    out_dir: Optional[Path] = None,
    failure_log: Optional[FailureLog] = None,
) -> List[Dict[str, Any]]:
    """Evaluate every file; write cards to `out_dir` when given."""
    evaluations: List[Dict[str, Any]] = []
    for pf in patient_files:
        if not pf.exists():
            print(f"ERROR: File not found: {pf}")
            continue

        print(f"Evaluating: {pf.name}")
        record = build_patient_record(pf)
        if failure_log is not None:
            logged = audit_record(record, now, failure_log, catalog=catalog, command=f"batch_eval {pf.name}")
            if logged:
                print(f"  → {logged} data-quality issue(s) logged to {failure_log.path}")

        evaluation = evaluate_record(record, catalog, now)
        evaluations.append(evaluation)
        print(f"  → {evaluation['payload']['summary']}")

        if out_dir is not None:
            card_path = out_dir / f"{pf.stem}_card.json"
            write_card(record.patient, evaluation["entries"], now, card_path)
            print(f"  → Card: {card_path}")

    return evaluations


def _print_alerts(evaluations: List[Dict[str, Any]]) -> int:
    total = 0
    for ev in evaluations:
        for alert in due_alerts(ev["record"], ev["entries"]):
            print(f"[{alert['level']}] {alert['message']}")
            total += 1
    return total


def _print_aggregate_summary(
    evaluations: List[Dict[str, Any]],
    failure_log: Optional[FailureLog] = None,
    pending: Optional[int] = None,
) -> None:
    totals = {s.value: 0 for s in Status}
    for ev in evaluations:
        for k, v in ev["payload"]["summary"].items():
            totals[k] = totals.get(k, 0) + v
    print()
    print(f"Patients evaluated: {len(evaluations)}")
    print(f"Verdicts: {totals}")
    if pending is not None:
        print(f"Pending doses: {pending}")
    if failure_log is not None and failure_log.count():
        print(f"Data-quality log: {failure_log.summary()} ({failure_log.path})")


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(
        description="VacinaOS — Evaluate patient files against the vaccine catalog"
    )
    ap.add_argument("--patient", "-p", help="Single patient .json export")
    ap.add_argument("--patient-dir", help="Directory of patient .json exports")
    ap.add_argument("--catalog", help="Vaccine catalog JSON (default: rules/vaccines/catalog_v1.json)")
    ap.add_argument("--now", help="Evaluation date YYYY-MM-DD (default: today)")
    ap.add_argument("--output-dir", help="Custom output directory (default: outputs/vaccination)")
    ap.add_argument("--alerts-only", action="store_true", help="Print due-dose alerts without writing cards")
    ap.add_argument("--failure-log", help="Governance failure log path (default: outputs/failure_log.jsonl)")

    args = ap.parse_args(argv)

    if not args.patient and not args.patient_dir:
        ap.print_help()
        return 1

    now: date = date.today()
    if args.now:
        parsed = parse_date(args.now)
        if parsed is None:
            raise SystemExit(f"Invalid --now date: {args.now}")
        now = parsed

    catalog = load_catalog(Path(args.catalog) if args.catalog else None)
    print(f"Catalog: {len(catalog.vaccines)} vaccines ({catalog.path.name})")
    print(f"Evaluation date: {as_date(now).isoformat()}")
    print()

    if args.patient:
        patient_files = [Path(args.patient)]
    else:
        patient_files = sorted(Path(args.patient_dir).glob("*.json"))

    out_dir = None
    if not args.alerts_only:
        out_dir = Path(args.output_dir) if args.output_dir else DEFAULT_OUTPUT_DIR
    failure_log = FailureLog(Path(args.failure_log) if args.failure_log else None)

    evaluations = run_batch(patient_files, catalog, now, out_dir=out_dir, failure_log=failure_log)

    if args.alerts_only:
        print()
        pending = _print_alerts(evaluations)
        _print_aggregate_summary(evaluations, failure_log, pending=pending)
    else:
        _print_aggregate_summary(evaluations, failure_log)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
