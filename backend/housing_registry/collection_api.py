import json
import logging
from functools import wraps
from typing import Any, Callable, Dict

from django.core.paginator import Paginator
from django.db import IntegrityError
from django.db.models import Count
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt

from .access import VILLAGE_ADMIN_ROLES, AccessScope, audit_region_q, authorize, region_q, scope_for_user
from .audit import AuditSink, RequestMeta
from .batch_import import BatchImporter
from .drafts import DraftStore, serialize_draft
from .errors import AccessDenied, IntakeError, VillageNotFound
from .ingestion import FieldSubmissionService, load_village
from .models import AuditLog, DataEntry, VillagePortal
from .payloads import require_schema
from .store import RegistryStore

logger = logging.getLogger(__name__)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name} is not valid JSON")


def _parse_json(request: HttpRequest) -> Dict[str, Any]:
    if request.body:
        try:
            payload = json.loads(request.body.decode("utf-8"), parse_constant=_reject_constant)
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}
    return {}


def _error(exc: IntakeError) -> JsonResponse:
    return JsonResponse(exc.to_payload(), status=exc.status, json_dumps_params={"ensure_ascii": False})


def _ok(data: Any, message: str = "获取成功", status: int = 200) -> JsonResponse:
    return JsonResponse({"message": message, "data": data}, status=status, json_dumps_params={"ensure_ascii": False})


def _method_not_allowed() -> JsonResponse:
    return JsonResponse({"error": "method not allowed"}, status=405)


def _paginate(request: HttpRequest, qs, key: str, serialize: Callable[[Any], Dict[str, Any]]) -> JsonResponse:
    try:
        page_size = min(max(int(request.GET.get("page_size", 20)), 1), 100)
        page_number = int(request.GET.get("page", 1))
    except ValueError:
        page_size, page_number = 20, 1
    paginator = Paginator(qs, page_size)
    page = paginator.get_page(page_number)
    return JsonResponse(
        {
            key: [serialize(item) for item in page.object_list],
            "count": paginator.count,
            "next": page.next_page_number() if page.has_next() else None,
            "prev": page.previous_page_number() if page.has_previous() else None,
        },
        json_dumps_params={"ensure_ascii": False},
    )


def require_scope(view):
    @wraps(view)
    def _wrapped(request: HttpRequest, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({"error": "UNAUTHORIZED", "message": "未授权访问"}, status=401)
        scope = scope_for_user(request.user)
        if scope is None:
            return _error(AccessDenied("当前账号未分配区域权限"))
        request.access_scope = scope  # type: ignore[attr-defined]
        return view(request, *args, **kwargs)

    return _wrapped


def _store() -> RegistryStore:
    return RegistryStore()


def _service(store: RegistryStore) -> FieldSubmissionService:
    return FieldSubmissionService(store, audit=AuditSink(store), drafts=DraftStore(store))


def _serialize_village(village: VillagePortal, usage_count: int = 0) -> Dict[str, Any]:
    return {
        "id": str(village.id),
        "villageName": village.village_name,
        "villageCode": village.village_code,
        "regionCode": village.region_code,
        "regionName": village.region_name,
        "isActive": village.is_active,
        "dataTemplates": village.data_templates,
        "portalUrl": village.portal_url,
        "usageCount": usage_count,
        "createdAt": village.created_at.isoformat() if village.created_at else None,
        "updatedAt": village.updated_at.isoformat() if village.updated_at else None,
    }


def _serialize_entry(entry: DataEntry) -> Dict[str, Any]:
    return {
        "id": str(entry.id),
        "villageCode": entry.village_id,
        "villageName": entry.village.village_name,
        "houseId": str(entry.house_id),
        "address": entry.house.address,
        "status": entry.status,
        "formData": entry.form_data,
        "normalizationNotes": entry.normalization_notes,
        "submittedBy": entry.submitted_by_id,
        "createdAt": entry.created_at.isoformat(),
    }


def _serialize_audit(log: AuditLog) -> Dict[str, Any]:
    return {
        "id": str(log.id),
        "action": log.action,
        "resource": log.resource,
        "resourceId": log.resource_id,
        "status": log.status,
        "message": log.message,
        "regionCode": log.region_code,
        "ipAddress": log.ip_address,
        "userAgent": log.user_agent,
        "metadata": log.metadata_json,
        "createdBy": log.created_by_id,
        "createdAt": log.created_at.isoformat(),
    }


@csrf_exempt
@require_scope
def submit_field_data(request: HttpRequest) -> JsonResponse:
    if request.method != "POST":
        return _method_not_allowed()
    scope: AccessScope = request.access_scope
    payload = _parse_json(request)
    store = _store()
    try:
        # Transport shape is checked by the service so every attempt is audited.
        result = _service(store).submit(
            str(payload.get("villageCode") or ""),
            payload.get("data"),
            scope,
            meta=RequestMeta.from_request(request),
        )
    except IntakeError as exc:
        return _error(exc)
    return _ok(result.to_payload(), "数据提交成功", status=201)


def _visible_village(village_code: str, scope: AccessScope) -> VillagePortal:
    village = VillagePortal.objects.filter(village_code=village_code).first()
    if not village:
        raise VillageNotFound()
    if not authorize(scope, village.region_code):
        raise AccessDenied()
    return village


@csrf_exempt
@require_scope
def draft_submission(request: HttpRequest) -> JsonResponse:
    scope: AccessScope = request.access_scope
    store = _store()
    drafts = DraftStore(store)
    if request.method == "GET":
        village_code = request.GET.get("villageCode", "").strip()
        if not village_code:
            return JsonResponse({"error": "MISSING_VILLAGE_CODE", "message": "缺少村庄代码"}, status=400)
        try:
            _visible_village(village_code, scope)
        except IntakeError as exc:
            return _error(exc)
        return JsonResponse({"data": serialize_draft(drafts.load(village_code, scope.user_id))})
    if request.method == "POST":
        payload = _parse_json(request)
        try:
            require_schema(payload, "draft_save.v1.schema.json")
            load_village(store.reader(), payload["villageCode"], scope)
        except IntakeError as exc:
            return _error(exc)
        draft = drafts.save(payload["villageCode"], scope.user_id, payload["step"], payload["data"])
        return _ok(
            {"id": str(draft.id), "step": draft.current_step, "updatedAt": draft.updated_at.isoformat()},
            "草稿保存成功",
        )
    if request.method == "DELETE":
        village_code = request.GET.get("villageCode", "").strip()
        if not village_code:
            return JsonResponse({"error": "MISSING_VILLAGE_CODE", "message": "缺少村庄代码"}, status=400)
        try:
            _visible_village(village_code, scope)
        except IntakeError as exc:
            return _error(exc)
        return JsonResponse({"deletedCount": drafts.delete(village_code, scope.user_id)})
    return _method_not_allowed()


def _require_village_admin(scope: AccessScope) -> None:
    if scope.role not in VILLAGE_ADMIN_ROLES:
        raise AccessDenied("权限不足")


@csrf_exempt
@require_scope
def villages_collection(request: HttpRequest) -> JsonResponse:
    scope: AccessScope = request.access_scope
    store = _store()
    if request.method == "POST":
        payload = _parse_json(request)
        meta = RequestMeta.from_request(request)
        try:
            _require_village_admin(scope)
            require_schema(payload, "village_portal.v1.schema.json")
            if not authorize(scope, payload["regionCode"]):
                raise AccessDenied("无权在该区域创建村庄")
        except IntakeError as exc:
            return _error(exc)
        try:
            with store.atomic() as tx:
                village = tx.objects(VillagePortal).create(
                    village_name=payload["villageName"],
                    village_code=payload["villageCode"],
                    region_code=payload["regionCode"],
                    region_name=payload.get("regionName", ""),
                    data_templates=payload["dataTemplates"],
                    is_active=payload.get("isActive", True),
                    created_by_id=scope.user_id,
                )
        except IntegrityError:
            logger.info("village code %s already registered", payload["villageCode"])
            AuditSink(store).record(
                action="CREATE",
                resource="village_portal",
                resource_id=payload["villageCode"],
                status="FAILED",
                user_id=scope.user_id,
                region_code=payload["regionCode"],
                message="村庄代码已存在",
                meta=meta,
            )
            return JsonResponse({"error": "DUPLICATE_VILLAGE_CODE", "message": "村庄代码已存在"}, status=409)
        AuditSink(store).record(
            action="CREATE",
            resource="village_portal",
            resource_id=str(village.id),
            status="SUCCESS",
            user_id=scope.user_id,
            region_code=village.region_code,
            metadata={"villageName": village.village_name, "villageCode": village.village_code},
            meta=meta,
        )
        return _ok(_serialize_village(village), "创建成功", status=201)
    if request.method == "GET":
        qs = (
            VillagePortal.objects.filter(region_q(scope))
            .annotate(usage=Count("data_entries"))
            .order_by("-created_at")
        )
        if request.GET.get("active") == "true":
            qs = qs.filter(is_active=True)
        return _ok([_serialize_village(village, village.usage) for village in qs])
    return _method_not_allowed()


@csrf_exempt
@require_scope
def village_detail(request: HttpRequest, village_code: str) -> JsonResponse:
    scope: AccessScope = request.access_scope
    store = _store()
    try:
        village = _visible_village(village_code, scope)
    except IntakeError as exc:
        return _error(exc)
    if request.method == "GET":
        return _ok(_serialize_village(village, village.data_entries.count()))
    if request.method == "PATCH":
        payload = _parse_json(request)
        try:
            _require_village_admin(scope)
            require_schema(payload, "village_portal_update.v1.schema.json")
        except IntakeError as exc:
            return _error(exc)
        fields = {"villageName": "village_name", "dataTemplates": "data_templates", "isActive": "is_active"}
        changed = {}
        for key, attr in fields.items():
            if key in payload:
                setattr(village, attr, payload[key])
                changed[key] = payload[key]
        with store.atomic() as tx:
            village.save(using=tx.alias)
        AuditSink(store).record(
            action="UPDATE",
            resource="village_portal",
            resource_id=str(village.id),
            status="SUCCESS",
            user_id=scope.user_id,
            region_code=village.region_code,
            metadata={"villageCode": village.village_code, "changes": changed},
            meta=RequestMeta.from_request(request),
        )
        return _ok(_serialize_village(village, village.data_entries.count()), "更新成功")
    return _method_not_allowed()


@csrf_exempt
@require_scope
def data_entries_collection(request: HttpRequest) -> JsonResponse:
    if request.method != "GET":
        return _method_not_allowed()
    scope: AccessScope = request.access_scope
    qs = DataEntry.objects.select_related("village", "house").filter(region_q(scope, "village__region_code"))
    village_code = request.GET.get("village_code") or request.GET.get("villageCode")
    if village_code:
        qs = qs.filter(village_id=village_code)
    if request.GET.get("status"):
        qs = qs.filter(status=request.GET["status"])
    return _paginate(request, qs.order_by("-created_at"), "entries", _serialize_entry)


@csrf_exempt
@require_scope
def audit_logs_collection(request: HttpRequest) -> JsonResponse:
    if request.method != "GET":
        return _method_not_allowed()
    scope: AccessScope = request.access_scope
    qs = AuditLog.objects.filter(audit_region_q(scope))
    for param in ("action", "status", "resource"):
        if request.GET.get(param):
            qs = qs.filter(**{param: request.GET[param]})
    return _paginate(request, qs.order_by("-created_at"), "logs", _serialize_audit)


@csrf_exempt
@require_scope
def batch_import(request: HttpRequest) -> JsonResponse:
    if request.method != "POST":
        return _method_not_allowed()
    scope: AccessScope = request.access_scope
    store = _store()
    try:
        result = BatchImporter(_service(store)).run(
            _parse_json(request), scope, meta=RequestMeta.from_request(request)
        )
    except IntakeError as exc:
        return _error(exc)
    message = "导入完成" if result.failed == 0 else f"导入完成，{result.failed} 条失败"
    return _ok(result.to_payload(), message)
