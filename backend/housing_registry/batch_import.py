"""Spreadsheet batch import.

Rows arrive keyed by the template's Chinese column headers. Each row is
checked on its own, translated into a field submission and pushed through
`FieldSubmissionService`, so a bad row never takes the good ones down with it.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.utils import timezone

from .access import AccessScope
from .audit import RequestMeta
from .errors import IntakeError, PayloadInvalid
from .ingestion import FieldSubmissionService, load_village
from .payloads import TEMPLATE_CONSTRUCTION, TEMPLATE_CRAFTSMAN, parse_day, require_schema

logger = logging.getLogger(__name__)

BATCH_SCHEMA = "batch_import.v1.schema.json"
FIRST_DATA_ROW = 2

COLUMNS = {
    "农房地址": "address",
    "申请人姓名": "applicantName",
    "联系电话": "phone",
    "身份证号": "idNumber",
    "房屋层数": "floors",
    "房屋高度": "height",
    "建筑面积": "area",
    "占地面积": "landArea",
    "房屋类型": "houseType",
    "建设状态": "constructionStatus",
    "建筑时间": "buildingTime",
    "完工时间": "completionTime",
    "地理坐标": "coordinates",
    "备注信息": "remarks",
}
HEADERS = {key: header for header, key in COLUMNS.items()}

# The sheet has no start date or craftsman columns, so those templates cannot be satisfied from a row.
WAIVED_TEMPLATES = (TEMPLATE_CONSTRUCTION, TEMPLATE_CRAFTSMAN)

COORDINATES_RE = re.compile(r"^-?\d{1,3}(\.\d+)?\s*,\s*-?\d{1,3}(\.\d+)?$")


@dataclass
class BatchResult:
    total: int = 0
    success: int = 0
    failed: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    rows: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "SUCCESS"
        return "PARTIAL_SUCCESS" if self.success else "FAILED"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "success": self.success,
            "failed": self.failed,
            "errors": self.errors,
            "rows": self.rows,
        }


def _blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def _number(value: Any) -> Optional[float]:
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return None


def check_row(row: Dict[str, Any], row_number: int) -> List[Dict[str, Any]]:
    """Spreadsheet range checks that the form UI enforces but a file cannot."""
    errors: List[Dict[str, Any]] = []

    def error(header: str, message: str, value: Any = None) -> None:
        item = {"row": row_number, "field": header, "message": message}
        if value is not None:
            item["value"] = value
        errors.append(item)

    if _blank(row.get("农房地址")):
        error("农房地址", "农房地址不能为空")
    if _blank(row.get("申请人姓名")):
        error("申请人姓名", "申请人姓名不能为空")

    floors = row.get("房屋层数")
    if not _blank(floors):
        number = _number(floors)
        if number is None or not 1 <= number <= 10 or number != int(number):
            error("房屋层数", "房屋层数应在1-10层之间", floors)

    height = row.get("房屋高度")
    if not _blank(height):
        number = _number(height)
        if number is None or not 0 < number <= 99.99:
            error("房屋高度", "房屋高度应在0.1-99.99米之间", height)

    for header in ("建筑面积", "占地面积"):
        area = row.get(header)
        if _blank(area):
            continue
        number = _number(area)
        if number is None or not 0 < number <= 9999.99:
            error(header, f"{header}应在1-9999.99平方米之间", area)

    coordinates = row.get("地理坐标")
    if not _blank(coordinates) and not COORDINATES_RE.match(str(coordinates).strip()):
        error("地理坐标", "地理坐标格式应为“纬度,经度”", coordinates)

    today = timezone.localdate()
    for header in ("建筑时间", "完工时间"):
        value = row.get(header)
        if _blank(value):
            continue
        try:
            day = parse_day(value)
        except ValueError:
            error(header, "日期格式不正确", value)
            continue
        if day and day > today:
            error(header, f"{header}不能晚于今天", value)

    return errors


def row_to_submission(row: Dict[str, Any]) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for header, key in COLUMNS.items():
        value = row.get(header)
        if _blank(value):
            continue
        if key == "floors":
            data[key] = int(float(str(value).strip()))
        elif key in ("height", "area", "landArea"):
            data[key] = float(str(value).strip())
        elif key == "phone":
            data[key] = re.sub(r"\D", "", str(value))
        else:
            data[key] = str(value).strip()
    return data


def _header_for(field_path: str) -> str:
    key = field_path.rsplit(".", 1)[-1]
    return HEADERS.get(key, key)


class BatchImporter:
    def __init__(self, service: FieldSubmissionService):
        self.service = service

    def run(
        self,
        payload: Dict[str, Any],
        scope: AccessScope,
        *,
        meta: Optional[RequestMeta] = None,
    ) -> BatchResult:
        require_schema(payload, BATCH_SCHEMA)
        village_code = payload["villageCode"]
        rows = payload["rows"]
        limit = settings.RURALHOUSING_BATCH_IMPORT_MAX_ROWS
        if len(rows) > limit:
            raise PayloadInvalid(
                f"单次最多导入 {limit} 条记录", details=[{"field": "rows", "message": f"共 {len(rows)} 条"}]
            )
        village = load_village(self.service.store.reader(), village_code, scope)

        result = BatchResult(total=len(rows))
        for index, row in enumerate(rows):
            row_number = index + FIRST_DATA_ROW
            row_errors = check_row(row, row_number)
            if row_errors:
                result.failed += 1
                result.errors.extend(row_errors)
                result.rows.append({"row": row_number, "status": "FAILED"})
                continue
            try:
                submitted = self.service.submit(
                    village_code, row_to_submission(row), scope, meta=meta, waived_templates=WAIVED_TEMPLATES
                )
            except IntakeError as exc:
                result.failed += 1
                result.errors.extend(self._row_errors(exc, row_number))
                result.rows.append({"row": row_number, "status": "FAILED", "error": exc.code})
                continue
            result.success += 1
            result.rows.append(
                {"row": row_number, "status": "SUCCESS", "entryId": submitted.entry_id, "houseId": submitted.house_id}
            )

        logger.info(
            "batch import village=%s total=%s success=%s failed=%s",
            village_code,
            result.total,
            result.success,
            result.failed,
        )
        self.service.audit.record(
            action="IMPORT",
            resource="data_entry",
            resource_id=village_code,
            status=result.status,
            user_id=scope.user_id,
            region_code=village.region_code,
            message=f"批量导入 {result.success}/{result.total}",
            metadata={"villageCode": village_code, "total": result.total, "success": result.success, "failed": result.failed},
            meta=meta,
        )
        return result

    def _row_errors(self, exc: IntakeError, row_number: int) -> List[Dict[str, Any]]:
        fields = [item for item in exc.details if isinstance(item, dict) and item.get("field")]
        if not fields:
            return [{"row": row_number, "field": "", "message": exc.to_payload()["message"]}]
        return [
            {"row": row_number, "field": _header_for(item["field"]), "message": item.get("message") or exc.message}
            for item in fields
        ]
