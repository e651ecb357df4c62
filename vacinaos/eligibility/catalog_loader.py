#!/usr/bin/env python3
"""
VacinaOS — Vaccine Catalog Loader (v1)

Loads:
- rules/vaccines/catalog_v1.json

Each entry is turned into a Vaccine tagged with its VaccineKind, so the
eligibility rules never look at display names.

Design:
- Deterministic (catalog order is preserved)
- Fail-closed validation
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from vacinaos.eligibility.model import TargetGroup, Vaccine, VaccineKind

REPO_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CATALOG_PATH = REPO_ROOT / "rules" / "vaccines" / "catalog_v1.json"

_REQUIRED_FIELDS = ("vaccine_id", "name", "kind", "target_group", "total_doses_in_scheme")


@dataclass(frozen=True)
class Catalog:
    meta: Dict[str, Any]
    vaccines: List[Vaccine]
    path: Path

    def by_id(self, vaccine_id: int) -> Optional[Vaccine]:
        for v in self.vaccines:
            if v.vaccine_id == vaccine_id:
                return v
        return None

    def by_name(self, name: str) -> Optional[Vaccine]:
        for v in self.vaccines:
            if v.name == name:
                return v
        return None


def _read_json(path: Path) -> Dict[str, Any]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise SystemExit(f"Missing JSON: {path}")
    except json.JSONDecodeError as e:
        raise SystemExit(f"Invalid JSON: {path}\n{e}")


def parse_vaccine(entry: Dict[str, Any], path: Path) -> Vaccine:
    missing = [f for f in _REQUIRED_FIELDS if f not in entry]
    if missing:
        raise SystemExit(f"{path}: vaccine entry {entry.get('name', '?')!r} missing {missing}")

    name = str(entry["name"])
    try:
        kind = VaccineKind(str(entry["kind"]))
    except ValueError:
        raise SystemExit(f"{path}: vaccine {name!r} has unknown kind {entry['kind']!r}")
    try:
        target_group = TargetGroup(str(entry["target_group"]))
    except ValueError:
        raise SystemExit(f"{path}: vaccine {name!r} has unknown target_group {entry['target_group']!r}")

    try:
        return Vaccine(
            vaccine_id=int(entry["vaccine_id"]),
            name=name,
            kind=kind,
            target_group=target_group,
            total_doses_in_scheme=int(entry["total_doses_in_scheme"]),
            doses_per_vial=int(entry.get("doses_per_vial", 1)),
            usable_hours_after_opening=int(entry.get("usable_hours_after_opening", 24)),
        )
    except (TypeError, ValueError) as e:
        raise SystemExit(f"{path}: vaccine {name!r} is invalid: {e}")


def load_catalog(path: Optional[Path] = None) -> Catalog:
    path = path or DEFAULT_CATALOG_PATH
    obj = _read_json(path)

    meta = obj.get("meta", {})
    if meta.get("locked") is not True:
        raise SystemExit(f"{path.name} must have meta.locked=true")

    entries = obj.get("vaccines")
    if not isinstance(entries, list) or not entries:
        raise SystemExit(f"{path} missing vaccines[]")

    vaccines: List[Vaccine] = []
    seen_ids = set()
    for entry in entries:
        if not isinstance(entry, dict):
            raise SystemExit(f"{path}: vaccines[] entries must be objects")
        v = parse_vaccine(entry, path)
        if v.vaccine_id in seen_ids:
            raise SystemExit(f"{path}: duplicate vaccine_id {v.vaccine_id}")
        seen_ids.add(v.vaccine_id)
        vaccines.append(v)

    return Catalog(meta=meta, vaccines=vaccines, path=path)
