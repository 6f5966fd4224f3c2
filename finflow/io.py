# finflow/io.py
from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Tuple
from pathlib import Path
import json
import math

import pandas as pd

from finflow.aggregation import allocation_amount
from finflow.constants import FRAME_HEADERS, KIND_CATEGORY, KIND_INCOME, KIND_SUB
from finflow.models import FinanceData, IncomeSource, SpendingCategory, SubCategory, Tier, new_id
from finflow.results import InvalidPayload


# ---------- JSON document shape ----------
# Documents keep the historical camelCase keys and write both "label" and
# "name" so older readers keep working. Either key is accepted on the way in.

def _label_of(entry: Mapping[str, Any]) -> str:
    value = entry.get("label")
    if value is None or value == "":
        value = entry.get("name")
    return "" if value is None else str(value)


def _checked(raw: Any, what: str) -> float:
    """Coerce an amount, raising InvalidPayload unless it is a finite number >= 0."""
    if isinstance(raw, bool):
        raise InvalidPayload(f"{what} must be a number, got {raw!r}")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise InvalidPayload(f"{what} must be a number, got {raw!r}") from None
    if math.isnan(value) or math.isinf(value) or value < 0:
        raise InvalidPayload(f"{what} must be a finite, non-negative number")
    return value


def _amount_of(entry: Mapping[str, Any], key: str = "amount", where: str = "") -> float:
    raw = entry.get(key, 0)
    if raw is None or raw == "":
        return 0.0
    return _checked(raw, f"{where}: '{key}'")


def _id_of(entry: Mapping[str, Any]) -> str:
    raw = entry.get("id")
    return new_id() if raw is None or raw == "" else str(raw)


def _unique(ids: List[str], where: str) -> None:
    seen = set()
    for i in ids:
        if i in seen:
            raise InvalidPayload(f"Duplicate id '{i}' in {where}")
        seen.add(i)


def _as_mapping(entry: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(entry, Mapping):
        raise InvalidPayload(f"{where} must be an object")
    return entry


def to_dict(data: FinanceData) -> Dict[str, Any]:
    def category(cat: SpendingCategory) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": cat.id,
            "label": cat.label,
            "name": cat.label,
            "amount": allocation_amount(cat),
            "subCategories": [
                {"id": s.id, "label": s.label, "name": s.label, "amount": s.amount}
                for s in cat.sub_categories
            ],
        }
        if cat.tier.percent is not None:
            out["percentage"] = cat.tier.percent
        if cat.amount is not None:
            out["allocatedAmount"] = cat.amount
        return out

    return {
        "incomeSources": [
            {"id": s.id, "label": s.label, "name": s.label, "amount": s.amount}
            for s in data.income_sources
        ],
        "spendingCategories": [category(c) for c in data.spending_categories],
    }


def from_dict(payload: Any) -> FinanceData:
    """Build FinanceData from a parsed document, raising InvalidPayload on bad shape."""
    if not isinstance(payload, Mapping):
        raise InvalidPayload("Finance data must be a JSON object")
    incomes = payload.get("incomeSources")
    categories = payload.get("spendingCategories")
    if not isinstance(incomes, list) or not isinstance(categories, list):
        raise InvalidPayload("Invalid data format: 'incomeSources' and 'spendingCategories' must be lists")

    sources = []
    for n, raw in enumerate(incomes):
        entry = _as_mapping(raw, f"incomeSources[{n}]")
        sources.append(IncomeSource(
            id=_id_of(entry),
            label=_label_of(entry),
            amount=_amount_of(entry, where=f"incomeSources[{n}]"),
        ))
    _unique([s.id for s in sources], "incomeSources")

    cats = []
    for n, raw in enumerate(categories):
        where = f"spendingCategories[{n}]"
        entry = _as_mapping(raw, where)
        subs_raw = entry.get("subCategories", [])
        if subs_raw is None:
            subs_raw = []
        if not isinstance(subs_raw, list):
            raise InvalidPayload(f"{where}.subCategories must be a list")
        subs = []
        for m, sub_raw in enumerate(subs_raw):
            sub = _as_mapping(sub_raw, f"{where}.subCategories[{m}]")
            subs.append(SubCategory(
                id=_id_of(sub),
                label=_label_of(sub),
                amount=_amount_of(sub, where=f"{where}.subCategories[{m}]"),
            ))
        _unique([s.id for s in subs], f"{where}.subCategories")

        override: Optional[float] = None
        if entry.get("allocatedAmount") is not None:
            override = _amount_of(entry, key="allocatedAmount", where=where)

        tier = Tier.from_percent(entry.get("percentage"))
        if tier is Tier.UNALLOCATED and entry.get("tier"):
            tier = Tier.from_percent(entry.get("tier"))

        cats.append(SpendingCategory(
            id=_id_of(entry),
            label=_label_of(entry),
            amount=override,
            tier=tier,
            sub_categories=tuple(subs),
        ))
    _unique([c.id for c in cats], "spendingCategories")

    return FinanceData(income_sources=tuple(sources), spending_categories=tuple(cats))


def export_json(data: FinanceData) -> str:
    return json.dumps(to_dict(data), indent=2)


def import_json(text) -> FinanceData:
    if isinstance(text, (bytes, bytearray)):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidPayload("Error reading file: not UTF-8 text") from None
    try:
        payload = json.loads(text)
    except (TypeError, json.JSONDecodeError) as e:
        raise InvalidPayload(f"Error reading file: {e}") from None
    return from_dict(payload)


# ---------- Flat table (Sheets / CSV) ----------

def to_frame(data: FinanceData) -> pd.DataFrame:
    rows = []
    for s in data.income_sources:
        rows.append({"Kind": KIND_INCOME, "CategoryId": "", "Id": s.id, "Label": s.label,
                     "Amount": s.amount, "Tier": "", "Allocated": ""})
    for c in data.spending_categories:
        rows.append({"Kind": KIND_CATEGORY, "CategoryId": "", "Id": c.id, "Label": c.label,
                     "Amount": "", "Tier": c.tier.value,
                     "Allocated": "" if c.amount is None else c.amount})
        for s in c.sub_categories:
            rows.append({"Kind": KIND_SUB, "CategoryId": c.id, "Id": s.id, "Label": s.label,
                         "Amount": s.amount, "Tier": "", "Allocated": ""})
    return pd.DataFrame(rows, columns=FRAME_HEADERS)


def _cell(value) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    return str(value).strip()


def _num(value, column: str = "Amount") -> Optional[float]:
    text = _cell(value)
    if text == "":
        return None
    v = pd.to_numeric(text, errors="coerce")
    if pd.isna(v):
        raise InvalidPayload(f"Expected a number in {column}, got {text!r}")
    return _checked(v, column)


def _tier_of(text: str) -> Tier:
    for tier in Tier:
        if tier.value == text:
            return tier
    return Tier.from_percent(text or None)


def from_frame(df: pd.DataFrame) -> FinanceData:
    """Rebuild FinanceData from the flat table written by ``to_frame``."""
    missing = [c for c in FRAME_HEADERS if c not in df.columns]
    if missing:
        raise InvalidPayload(f"Missing required columns: {', '.join(missing)}")

    sources: List[IncomeSource] = []
    cats: List[Tuple[Dict[str, Any], List[SubCategory]]] = []
    by_id: Dict[str, List[SubCategory]] = {}
    pending_subs: List[Tuple[str, SubCategory]] = []

    for _, row in df.dropna(how="all").iterrows():
        kind = _cell(row["Kind"]).lower()
        rid = _cell(row["Id"]) or new_id()
        label = _cell(row["Label"])
        if kind == KIND_INCOME:
            sources.append(IncomeSource(id=rid, label=label, amount=_num(row["Amount"]) or 0.0))
        elif kind == KIND_CATEGORY:
            subs: List[SubCategory] = []
            cats.append(({"id": rid, "label": label, "tier": _tier_of(_cell(row["Tier"])),
                          "amount": _num(row["Allocated"], "Allocated")}, subs))
            by_id[rid] = subs
        elif kind == KIND_SUB:
            sub = SubCategory(id=rid, label=label, amount=_num(row["Amount"]) or 0.0)
            pending_subs.append((_cell(row["CategoryId"]), sub))
        elif kind:
            raise InvalidPayload(f"Unknown row kind {kind!r}")

    for parent, sub in pending_subs:
        if parent not in by_id:
            raise InvalidPayload(f"Subcategory {sub.id} refers to unknown category {parent!r}")
        by_id[parent].append(sub)

    _unique([s.id for s in sources], "income rows")
    _unique([c["id"] for c, _ in cats], "category rows")
    for c, subs in cats:
        _unique([s.id for s in subs], f"subcategories of {c['id']}")

    return FinanceData(
        income_sources=tuple(sources),
        spending_categories=tuple(
            SpendingCategory(sub_categories=tuple(subs), **c) for c, subs in cats
        ),
    )


def export_csv(data: FinanceData) -> str:
    return to_frame(data).to_csv(index=False)


def validate_upload(
    uploaded,
    allowed_exts: set,
    allowed_mime: set,
    max_bytes: int
) -> Tuple[bool, str]:
    """Basic preflight checks for Streamlit UploadedFile."""
    if uploaded is None:
        return False, "No file uploaded."
    name = getattr(uploaded, "name", "") or ""
    ext = Path(name).suffix.lower()
    size = getattr(uploaded, "size", None)
    mime = getattr(uploaded, "type", "") or ""

    errs = []
    if ext not in allowed_exts:
        errs.append(f"Unsupported extension '{ext}'. Allowed: {', '.join(sorted(allowed_exts))}.")
    if mime not in allowed_mime:
        errs.append(f"Unexpected MIME type '{mime}'.")
    if isinstance(size, int) and size > max_bytes:
        errs.append(f"File too large ({size/1_000_000:.1f} MB). Max {max_bytes/1_000_000:.1f} MB.")

    return (len(errs) == 0), " ".join(errs)
