"""Transport validation and the typed view over a field submission.

The raw `data` object a village collector sends is kept verbatim for the
audit trail. Everything that builds records goes through `FieldSubmission`,
which is assembled from that raw object plus the set of data templates the
village portal declares.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional

from django.utils.dateparse import parse_date, parse_datetime
from jsonschema import Draft202012Validator

from .errors import PayloadInvalid

logger = logging.getLogger(__name__)

TEMPLATE_HOUSE_BASIC = "house_basic"
TEMPLATE_CONSTRUCTION = "house_construction"
TEMPLATE_CRAFTSMAN = "craftsman_info"

_TEMPLATE_ALIASES = {
    "basic": TEMPLATE_HOUSE_BASIC,
    "house_basic": TEMPLATE_HOUSE_BASIC,
    "construction": TEMPLATE_CONSTRUCTION,
    "house_construction": TEMPLATE_CONSTRUCTION,
    "craftsman": TEMPLATE_CRAFTSMAN,
    "craftsman_info": TEMPLATE_CRAFTSMAN,
}

HOUSE_TYPE_MAP = {
    "RURAL_HOUSE": "NEW_BUILD",
    "NEW_BUILD": "NEW_BUILD",
    "RENOVATION": "RENOVATION",
    "EXPANSION": "EXPANSION",
    "REPAIR": "REPAIR",
    "农村住宅": "NEW_BUILD",
    "新建": "NEW_BUILD",
    "翻建": "RENOVATION",
    "改建": "RENOVATION",
    "扩建": "EXPANSION",
    "维修": "REPAIR",
}
DEFAULT_HOUSE_TYPE = "NEW_BUILD"

CONSTRUCTION_STATUS_MAP = {
    "PLANNING": "PLANNED",
    "PLANNED": "PLANNED",
    "APPROVED": "APPROVED",
    "UNDER_CONSTRUCTION": "IN_PROGRESS",
    "IN_PROGRESS": "IN_PROGRESS",
    "COMPLETED": "COMPLETED",
    "SUSPENDED": "SUSPENDED",
    "规划中": "PLANNED",
    "已审批": "APPROVED",
    "建设中": "IN_PROGRESS",
    "已完工": "COMPLETED",
    "暂停施工": "SUSPENDED",
}
DEFAULT_CONSTRUCTION_STATUS = "PLANNED"

SKILL_LEVEL_MAP = {
    "BEGINNER": "BEGINNER",
    "INTERMEDIATE": "INTERMEDIATE",
    "ADVANCED": "ADVANCED",
    "EXPERT": "EXPERT",
    "初级": "BEGINNER",
    "中级": "INTERMEDIATE",
    "高级": "ADVANCED",
    "专家": "EXPERT",
}
DEFAULT_SKILL_LEVEL = "INTERMEDIATE"
SKILL_LEVEL_ORDER = ("BEGINNER", "INTERMEDIATE", "ADVANCED", "EXPERT")


def _load_schema_local(name: str) -> Dict[str, Any]:
    base_dir = Path(__file__).resolve().parents[1]
    path = base_dir / "schemas" / name
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


@lru_cache(maxsize=None)
def _validator(schema_name: str) -> Draft202012Validator:
    return Draft202012Validator(_load_schema_local(schema_name))


def schema_issues(payload: Any, schema_name: str) -> List[Dict[str, str]]:
    issues = []
    for error in sorted(_validator(schema_name).iter_errors(payload), key=lambda e: list(e.path)):
        path = ".".join(str(p) for p in error.path) if error.path else "root"
        issues.append({"field": path, "message": error.message})
    return issues


def require_schema(payload: Any, schema_name: str) -> Dict[str, Any]:
    issues = schema_issues(payload, schema_name)
    if issues:
        raise PayloadInvalid(details=issues)
    return payload


def canonical_templates(names: Optional[Iterable[str]]) -> FrozenSet[str]:
    resolved = set()
    for name in names or []:
        key = str(name or "").strip().lower()
        if key in _TEMPLATE_ALIASES:
            resolved.add(_TEMPLATE_ALIASES[key])
        elif key:
            resolved.add(key)
    return frozenset(resolved)


@dataclass(frozen=True)
class Normalized:
    value: str
    raw: Optional[str] = None
    recognized: bool = True

    def note(self, field_name: str) -> Optional[Dict[str, str]]:
        if self.recognized:
            return None
        return {"field": field_name, "raw": self.raw or "", "applied": self.value}


def _normalize_choice(raw: Any, table: Mapping[str, str], default: str) -> Normalized:
    if raw is None or str(raw).strip() == "":
        return Normalized(value=default)
    text = str(raw).strip()
    key = text.upper().replace("-", "_").replace(" ", "_")
    if key in table:
        return Normalized(value=table[key], raw=text)
    if text in table:
        return Normalized(value=table[text], raw=text)
    return Normalized(value=default, raw=text, recognized=False)


def normalize_house_type(raw: Any) -> Normalized:
    return _normalize_choice(raw, HOUSE_TYPE_MAP, DEFAULT_HOUSE_TYPE)


def normalize_construction_status(raw: Any) -> Normalized:
    return _normalize_choice(raw, CONSTRUCTION_STATUS_MAP, DEFAULT_CONSTRUCTION_STATUS)


def normalize_skill_level(raw: Any) -> Normalized:
    return _normalize_choice(raw, SKILL_LEVEL_MAP, DEFAULT_SKILL_LEVEL)


def parse_day(value: Any) -> Optional[date]:
    """Parse `YYYY-MM-DD` or an ISO timestamp. Raises ValueError on garbage."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    parsed = parse_date(text)
    if parsed:
        return parsed
    stamp = parse_datetime(text.replace("Z", "+00:00"))
    if stamp:
        return stamp.date()
    raise ValueError(f"invalid date: {text}")


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        number = Decimal(str(value))
        if number.is_finite():
            return number.quantize(Decimal("0.01"))
    except InvalidOperation:
        pass
    raise ValueError(f"invalid number: {value!r}")


@dataclass
class ApplicantCandidate:
    name: str
    phone: str = ""
    id_number: str = ""
    address: str = ""


@dataclass
class CraftsmanCandidate:
    name: str
    phone: str = ""
    id_number: str = ""
    specialties: List[str] = field(default_factory=list)
    skill_level: Normalized = field(default_factory=lambda: Normalized(value=DEFAULT_SKILL_LEVEL))
    team_id: str = ""


@dataclass
class HouseSection:
    address: str
    floors: Optional[int] = None
    height: Optional[Decimal] = None
    building_area: Optional[Decimal] = None
    land_area: Optional[Decimal] = None
    house_type: Normalized = field(default_factory=lambda: Normalized(value=DEFAULT_HOUSE_TYPE))
    construction_status: Normalized = field(
        default_factory=lambda: Normalized(value=DEFAULT_CONSTRUCTION_STATUS)
    )
    building_time: Optional[date] = None
    completion_time: Optional[date] = None
    coordinates: str = ""
    remarks: str = ""


@dataclass
class ConstructionSection:
    start_date: Optional[date] = None
    expected_completion_date: Optional[date] = None
    current_phase: str = ""
    construction_method: str = ""
    progress_description: str = ""
    photo_urls: List[str] = field(default_factory=list)


@dataclass
class CraftsmanSection:
    is_new: bool = False
    craftsman_id: str = ""
    candidate: Optional[CraftsmanCandidate] = None
    work_description: str = ""

    @property
    def declares_new(self) -> bool:
        return self.is_new and self.candidate is not None and bool(self.candidate.name)


@dataclass
class FieldSubmission:
    templates: FrozenSet[str]
    applicant: ApplicantCandidate
    house: HouseSection
    construction: ConstructionSection
    craftsman: CraftsmanSection
    raw: Dict[str, Any]

    def has_template(self, name: str) -> bool:
        return name in self.templates

    def normalization_notes(self) -> List[Dict[str, str]]:
        notes = [
            self.house.house_type.note("houseType"),
            self.house.construction_status.note("constructionStatus"),
        ]
        if self.craftsman.candidate is not None:
            notes.append(self.craftsman.candidate.skill_level.note("skillLevel"))
        return [note for note in notes if note]


def build_submission(data: Dict[str, Any], templates: Iterable[str]) -> FieldSubmission:
    """Assemble the typed view. Dates and amounts that do not parse are transport errors."""
    issues: List[Dict[str, str]] = []
    dates: Dict[str, Optional[date]] = {}
    for key in ("buildingTime", "completionTime", "startDate", "expectedCompletionDate"):
        try:
            dates[key] = parse_day(data.get(key))
        except ValueError:
            issues.append({"field": f"data.{key}", "message": "日期格式不正确"})
            dates[key] = None
    amounts: Dict[str, Optional[Decimal]] = {}
    for key in ("height", "area", "landArea"):
        try:
            amounts[key] = _decimal(data.get(key))
        except ValueError:
            issues.append({"field": f"data.{key}", "message": "数值格式不正确"})
            amounts[key] = None
    if issues:
        raise PayloadInvalid(details=issues)

    house_type = normalize_house_type(data.get("houseType"))
    status = normalize_construction_status(data.get("constructionStatus"))
    for name, normalized in (("houseType", house_type), ("constructionStatus", status)):
        if not normalized.recognized:
            logger.warning(
                "unrecognized %s %r, defaulting to %s", name, normalized.raw, normalized.value
            )

    floors = data.get("floors")
    candidate = None
    if _text(data, "craftsmanName"):
        candidate = CraftsmanCandidate(
            name=_text(data, "craftsmanName"),
            phone=_text(data, "craftsmanPhone"),
            id_number=_text(data, "craftsmanIdNumber").upper(),
            specialties=[str(s).strip() for s in (data.get("specialties") or []) if str(s).strip()],
            skill_level=normalize_skill_level(data.get("skillLevel")),
            team_id=_text(data, "teamId"),
        )

    return FieldSubmission(
        templates=canonical_templates(templates),
        applicant=ApplicantCandidate(
            name=_text(data, "applicantName"),
            phone=_text(data, "phone"),
            id_number=_text(data, "idNumber").upper(),
            address=_text(data, "applicantAddress"),
        ),
        house=HouseSection(
            address=_text(data, "address"),
            floors=int(floors) if floors else None,
            height=amounts["height"],
            building_area=amounts["area"],
            land_area=amounts["landArea"],
            house_type=house_type,
            construction_status=status,
            building_time=dates["buildingTime"],
            completion_time=dates["completionTime"],
            coordinates=_text(data, "coordinates"),
            remarks=_text(data, "remarks"),
        ),
        construction=ConstructionSection(
            start_date=dates["startDate"],
            expected_completion_date=dates["expectedCompletionDate"],
            current_phase=_text(data, "currentPhase"),
            construction_method=_text(data, "constructionMethod"),
            progress_description=_text(data, "progressDescription"),
            photo_urls=[str(url).strip() for url in (data.get("constructionPhotos") or []) if str(url).strip()],
        ),
        craftsman=CraftsmanSection(
            is_new=bool(data.get("isNewCraftsman")),
            craftsman_id=_text(data, "craftsmanId"),
            candidate=candidate,
            work_description=_text(data, "workDescription"),
        ),
        raw=data,
    )
