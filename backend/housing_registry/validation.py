import re
from typing import Any, Dict, Iterable, List, Mapping

from .payloads import (
    TEMPLATE_CONSTRUCTION,
    TEMPLATE_CRAFTSMAN,
    canonical_templates,
    normalize_construction_status,
    parse_day,
)

PHONE_RE = re.compile(r"^1[3-9]\d{9}$")
ID_NUMBER_RE = re.compile(r"^\d{17}[\dX]$")


def _present(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _day_or_none(value: Any):
    try:
        return parse_day(value)
    except ValueError:
        return None


def validate_submission(
    data: Mapping[str, Any], templates: Iterable[str], waived: Iterable[str] = ()
) -> List[Dict[str, str]]:
    """Cross-field business rules. Every rule runs; all violations are returned.

    Templates named in `waived` do not contribute their required-field rules.
    """
    applicable = canonical_templates(templates) - canonical_templates(waived)
    violations: List[Dict[str, str]] = []

    def violation(field_name: str, message: str) -> None:
        violations.append({"field": field_name, "message": message})

    if not _present(data, "address"):
        violation("address", "农房地址不能为空")
    if not _present(data, "applicantName"):
        violation("applicantName", "申请人姓名不能为空")

    if _present(data, "phone") and not PHONE_RE.match(str(data["phone"]).strip()):
        violation("phone", "手机号格式不正确")
    if _present(data, "idNumber") and not ID_NUMBER_RE.match(str(data["idNumber"]).strip()):
        violation("idNumber", "身份证号格式不正确")

    under_construction = normalize_construction_status(data.get("constructionStatus")).value == "IN_PROGRESS"

    if TEMPLATE_CONSTRUCTION in applicable and under_construction and not _present(data, "startDate"):
        violation("startDate", "建设中的农房必须填写开工日期")

    start = _day_or_none(data.get("startDate"))
    expected = _day_or_none(data.get("expectedCompletionDate"))
    if start and expected and expected < start:
        violation("expectedCompletionDate", "预计完工日期不能早于开工日期")

    if TEMPLATE_CRAFTSMAN in applicable and under_construction:
        if not _present(data, "craftsmanId") and not _present(data, "craftsmanName"):
            violation("craftsmanId", "建设中的农房必须指定工匠")

    if data.get("isNewCraftsman") and _present(data, "craftsmanName"):
        if not _present(data, "craftsmanPhone"):
            violation("craftsmanPhone", "新建工匠必须填写联系电话")
        elif not PHONE_RE.match(str(data["craftsmanPhone"]).strip()):
            violation("craftsmanPhone", "工匠手机号格式不正确")
        if not _present(data, "craftsmanIdNumber"):
            violation("craftsmanIdNumber", "新建工匠必须填写身份证号")
        elif not ID_NUMBER_RE.match(str(data["craftsmanIdNumber"]).strip()):
            violation("craftsmanIdNumber", "工匠身份证号格式不正确")

    return violations
