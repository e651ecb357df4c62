#!/usr/bin/env python3
"""
VacinaOS — Eligibility Engine (v1)

Decides whether the next dose of a vaccine is complete, due or blocked for a
patient, given the administration history and the evaluation date.

Evaluation order:
1. Scheme completion (doses taken >= doses in scheme) short-circuits everything.
2. Ordered rule chain, dispatched on VaccineKind. A rule returns a Verdict to
   decide, or None to fall through to the next rule.
3. Default: due.

Design:
- Deterministic: `now` is always passed in
- Total: never raises for well-typed input
- Count-only: dose dates are not consulted
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, FrozenSet, Iterable, List, Optional, Sequence

from vacinaos import ENGINE_VERSION, RULES_VERSIONS
from vacinaos.eligibility.age import DateLike, as_date, compute_age
from vacinaos.eligibility.model import (
    LABEL_COMPLETE,
    LABEL_DUE,
    AgeBreakdown,
    Administration,
    Patient,
    Sex,
    Status,
    TargetGroup,
    Vaccine,
    VaccineKind,
    Verdict,
)


@dataclass(frozen=True)
class RuleContext:
    """Everything a rule may look at for one evaluation."""
    patient: Patient
    vaccine: Vaccine
    age: AgeBreakdown
    doses_taken: int
    now: DateLike


@dataclass(frozen=True)
class Rule:
    rule_id: str
    kinds: Optional[FrozenSet[VaccineKind]]  # None = applies to every vaccine
    check: Callable[[RuleContext], Optional[Verdict]]

    def applies_to(self, vaccine: Vaccine) -> bool:
        return self.kinds is None or vaccine.kind in self.kinds


@dataclass(frozen=True)
class CardEntry:
    vaccine: Vaccine
    verdict: Verdict


class DoseNotAdministrable(Exception):
    """Raised when a dose is requested for a vaccine that is not due."""

    def __init__(self, vaccine: Vaccine, verdict: Verdict):
        self.vaccine = vaccine
        self.verdict = verdict
        super().__init__(f"{vaccine.name}: {verdict.status.value} ({verdict.label})")


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

def matches_vaccine(record: Administration, vaccine: Vaccine) -> bool:
    if record.vaccine_id is not None:
        return record.vaccine_id == vaccine.vaccine_id
    # Legacy exports carry only the vaccine name
    return record.vaccine_name is not None and record.vaccine_name == vaccine.name


def count_doses(vaccine: Vaccine, history: Iterable[Administration]) -> int:
    return sum(1 for h in history if matches_vaccine(h, vaccine))


def next_dose_number(vaccine: Vaccine, history: Iterable[Administration]) -> int:
    """Sequence number the next recorded dose of `vaccine` should carry."""
    return count_doses(vaccine, history) + 1


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def _blocked(rule_id: str, label: str, ctx: RuleContext) -> Verdict:
    return Verdict(status=Status.BLOCKED, label=label, rule_id=rule_id, doses_taken=ctx.doses_taken)


def _due_or_complete(rule_id: str, ctx: RuleContext) -> Verdict:
    if ctx.doses_taken == 0:
        return Verdict(status=Status.DUE, label=LABEL_DUE, rule_id=rule_id, doses_taken=0)
    return Verdict(status=Status.COMPLETE, label=LABEL_COMPLETE, rule_id=rule_id, doses_taken=ctx.doses_taken)


def rule_bcg(ctx: RuleContext) -> Optional[Verdict]:
    if ctx.age.years >= 1:
        return _blocked("bcg", "Bloqueado (>1 ano)", ctx)
    return _due_or_complete("bcg", ctx)


def rule_birth_dose(ctx: RuleContext) -> Optional[Verdict]:
    if ctx.age.approx_total_days > 1:
        return _blocked("birth_dose", "Bloqueado (>24h)", ctx)
    return _due_or_complete("birth_dose", ctx)


def rule_rotavirus(ctx: RuleContext) -> Optional[Verdict]:
    # Ceiling applies to the first dose only
    if ctx.doses_taken == 0 and ctx.age.total_months > 4:
        return _blocked("rotavirus", "Bloqueado (>4 meses)", ctx)
    return None


def rule_penta_pneumo(ctx: RuleContext) -> Optional[Verdict]:
    if ctx.doses_taken == 0 and ctx.age.years >= 2:
        return _blocked("penta_pneumo", "Bloqueado (>2 anos)", ctx)
    return None


def rule_hpv(ctx: RuleContext) -> Optional[Verdict]:
    years = ctx.age.years
    if ctx.patient.sex != Sex.FEMALE or years < 9 or years > 12:
        return _blocked("hpv", "Apenas meninas 9-12 anos", ctx)
    return None


def rule_tetanus_toxoid_pregnancy(ctx: RuleContext) -> Optional[Verdict]:
    if ctx.vaccine.target_group != TargetGroup.PREGNANT_WOMAN:
        return None
    if ctx.patient.postpartum:
        return _blocked("td_pregnancy", "Bloqueado (Pós-parto)", ctx)
    return None


def rule_vitamin_a(ctx: RuleContext) -> Optional[Verdict]:
    if not ctx.patient.postpartum:
        return _blocked("vitamin_a", "Apenas Puérperas", ctx)
    if ctx.patient.delivery_date is not None:
        since_delivery = compute_age(ctx.patient.delivery_date, ctx.now)
        if since_delivery.approx_weeks > 8:
            return _blocked("vitamin_a", "Bloqueado (>8 semanas)", ctx)
    return None


def rule_child_age_ceiling(ctx: RuleContext) -> Optional[Verdict]:
    if ctx.vaccine.target_group == TargetGroup.CHILD and ctx.age.years >= 5:
        return _blocked("child_ceiling", "Bloqueado (>5 anos)", ctx)
    return None


RULE_CHAIN: Sequence[Rule] = (
    Rule("bcg", frozenset({VaccineKind.BCG}), rule_bcg),
    Rule("birth_dose", frozenset({VaccineKind.BIRTH_DOSE}), rule_birth_dose),
    Rule("rotavirus", frozenset({VaccineKind.ROTAVIRUS}), rule_rotavirus),
    Rule("penta_pneumo", frozenset({VaccineKind.PENTA_PNEUMO}), rule_penta_pneumo),
    Rule("hpv", frozenset({VaccineKind.HPV}), rule_hpv),
    Rule("td_pregnancy", frozenset({VaccineKind.TETANUS_TOXOID}), rule_tetanus_toxoid_pregnancy),
    Rule("vitamin_a", frozenset({VaccineKind.VITAMIN_A}), rule_vitamin_a),
    Rule("child_ceiling", None, rule_child_age_ceiling),
)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

def evaluate(
    patient: Patient,
    vaccine: Vaccine,
    history: Iterable[Administration],
    now: DateLike,
    rules: Sequence[Rule] = RULE_CHAIN,
) -> Verdict:
    """Eligibility verdict for the next dose of `vaccine`."""
    age = compute_age(patient.date_of_birth, now)
    doses_taken = count_doses(vaccine, history)

    if doses_taken >= vaccine.total_doses_in_scheme:
        return Verdict(status=Status.COMPLETE, label=LABEL_COMPLETE, rule_id="scheme_complete", doses_taken=doses_taken)

    ctx = RuleContext(patient=patient, vaccine=vaccine, age=age, doses_taken=doses_taken, now=now)
    for rule in rules:
        if not rule.applies_to(vaccine):
            continue
        verdict = rule.check(ctx)
        if verdict is not None:
            return verdict

    return Verdict(status=Status.DUE, label=LABEL_DUE, rule_id="default_due", doses_taken=doses_taken)


def evaluate_card(
    patient: Patient,
    catalog: Iterable[Vaccine],
    history: Sequence[Administration],
    now: DateLike,
) -> List[CardEntry]:
    """One verdict per catalog vaccine, in catalog order."""
    return [CardEntry(vaccine=v, verdict=evaluate(patient, v, history, now)) for v in catalog]


def check_administrable(
    patient: Patient,
    vaccine: Vaccine,
    history: Sequence[Administration],
    now: DateLike,
) -> int:
    """Return the next dose number, or raise DoseNotAdministrable.

    Advisory: vial stock is checked separately by the registry.
    """
    verdict = evaluate(patient, vaccine, history, now)
    if verdict.status != Status.DUE:
        raise DoseNotAdministrable(vaccine, verdict)
    return next_dose_number(vaccine, history)


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def summarize_card(entries: Iterable[CardEntry]) -> dict:
    counts = {s.value: 0 for s in Status}
    for e in entries:
        counts[e.verdict.status.value] += 1
    return counts


def card_payload(patient: Patient, entries: List[CardEntry], now: DateLike) -> dict:
    age = compute_age(patient.date_of_birth, now)
    return {
        "engine_version": ENGINE_VERSION,
        "rules_versions": RULES_VERSIONS,
        "patient_id": patient.patient_id,
        "evaluated_on": as_date(now).isoformat(),
        "age": {"years": age.years, "months": age.months, "days": age.days},
        "summary": summarize_card(entries),
        "vaccines": [
            {
                "vaccine_id": e.vaccine.vaccine_id,
                "name": e.vaccine.name,
                "kind": e.vaccine.kind.value,
                "status": e.verdict.status.value,
                "label": e.verdict.label,
                "rule_id": e.verdict.rule_id,
                "doses_taken": e.verdict.doses_taken,
                "total_doses_in_scheme": e.vaccine.total_doses_in_scheme,
            }
            for e in entries
        ],
    }


def write_card(patient: Patient, entries: List[CardEntry], now: DateLike, out_path: Path) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    payload = card_payload(patient, entries, now)
    out_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
