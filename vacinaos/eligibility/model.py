#!/usr/bin/env python3
"""
VacinaOS — Eligibility Data Models (v1)

Defines the core data structures for the eligibility engine:
- Patient: read-only clinical view of a registered patient
- Vaccine: catalog entry, tagged with a VaccineKind at load time
- Administration: one recorded dose in the patient's history
- AgeBreakdown: calendar-aware years/months/days plus approximate totals
- Verdict: evaluation result for one (patient, vaccine) pair
- Status: possible verdict statuses

Design:
- Deterministic
- Snapshots only: nothing here is mutated by the engine
- Rules dispatch on VaccineKind, never on display names
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional


class Sex(Enum):
    """Patient sex as recorded by the registry."""
    MALE = "M"
    FEMALE = "F"


class TargetGroup(Enum):
    """Demographic group a vaccine is primarily intended for."""
    CHILD = "crianca"
    FERTILE_AGE_WOMAN = "mif"
    PREGNANT_WOMAN = "gravida"
    POSTPARTUM_WOMAN = "puerpera"
    ADULT = "adulto"
    HPV_ELIGIBLE = "hpv"


class VaccineKind(Enum):
    """Stable rule-dispatch tag attached to each catalog vaccine."""
    BCG = "BCG"
    BIRTH_DOSE = "BIRTH_DOSE"  # HepB0, Polio 0
    ROTAVIRUS = "ROTAVIRUS"
    PENTA_PNEUMO = "PENTA_PNEUMO"
    HPV = "HPV"
    TETANUS_TOXOID = "TETANUS_TOXOID"
    VITAMIN_A = "VITAMIN_A"
    STANDARD = "STANDARD"


class Status(Enum):
    """Possible outcomes of an eligibility evaluation."""
    COMPLETE = "complete"
    DUE = "due"
    BLOCKED = "blocked"


LABEL_COMPLETE = "Completo"
LABEL_DUE = "Pendente"


@dataclass(frozen=True)
class Patient:
    """Clinical attributes of a patient, as consumed by the rules.

    Attributes:
        patient_id: Registry identifier (opaque)
        date_of_birth: Birth date (must not be after the evaluation date)
        sex: Recorded sex
        pregnant: Currently pregnant
        fertile_age_woman: Woman of fertile age
        postpartum: In the postpartum period
        delivery_date: Date of delivery (only meaningful when postpartum)
        name, locality, contact, identification: free text, ignored by the rules
    """
    patient_id: Optional[str]
    date_of_birth: date
    sex: Sex
    pregnant: bool = False
    fertile_age_woman: bool = False
    postpartum: bool = False
    delivery_date: Optional[date] = None
    name: Optional[str] = None
    locality: Optional[str] = None
    contact: Optional[str] = None
    identification: Optional[str] = None


@dataclass(frozen=True)
class Vaccine:
    """A vaccine definition from the catalog.

    Attributes:
        vaccine_id: Catalog identifier
        name: Display name (presentation only)
        kind: Rule-dispatch tag
        target_group: Primary target group
        total_doses_in_scheme: Doses required for the scheme to be complete (>= 1)
        doses_per_vial: Inventory data, unused by the rules
        usable_hours_after_opening: Inventory data, unused by the rules
    """
    vaccine_id: int
    name: str
    kind: VaccineKind
    target_group: TargetGroup
    total_doses_in_scheme: int = 1
    doses_per_vial: int = 1
    usable_hours_after_opening: int = 24

    def __post_init__(self) -> None:
        if self.total_doses_in_scheme < 1:
            raise ValueError(
                f"Vaccine {self.name!r}: total_doses_in_scheme must be >= 1 "
                f"(got {self.total_doses_in_scheme})"
            )


@dataclass(frozen=True)
class Administration:
    """One recorded dose. Only the count per vaccine is used by the rules."""
    patient_id: Optional[str]
    vaccine_id: Optional[int]
    dose_number: int = 1
    administered_on: Optional[date] = None
    vaccine_name: Optional[str] = None


@dataclass(frozen=True)
class AgeBreakdown:
    """Calendar-correct years/months/days since an anchor date.

    The derived totals use 30-day months and 4-week months. They are
    approximations and the rule thresholds are tuned against them.
    """
    years: int
    months: int
    days: int

    @property
    def total_months(self) -> int:
        return self.years * 12 + self.months

    @property
    def approx_total_days(self) -> int:
        return self.total_months * 30 + self.days

    @property
    def approx_weeks(self) -> int:
        return self.years * 52 + self.months * 4 + self.days // 7


@dataclass(frozen=True)
class Verdict:
    """Result of evaluating one vaccine for one patient.

    Attributes:
        status: complete / due / blocked
        label: Human-readable reason shown on the vaccination card
        rule_id: Identifier of the rule that decided the verdict
        doses_taken: Number of matching doses found in the history
    """
    status: Status
    label: str
    rule_id: str = "default_due"
    doses_taken: int = 0
