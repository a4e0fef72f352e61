"""Village field-data ingestion.

One call to `FieldSubmissionService.submit` turns a collector's form into an
applicant, an optional craftsman and construction project, the house record,
its photos, and the data entry that keeps the raw form for audit. Either all
of those rows are committed together or none are.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from django.conf import settings
from django.utils import timezone

from .access import AccessScope, authorize
from .audit import AuditSink, RequestMeta
from .drafts import DraftStore
from .errors import (
    AccessDenied,
    BusinessRuleViolation,
    DuplicateAddress,
    IntakeError,
    InternalIntakeError,
    VillageInactive,
    VillageNotFound,
)
from .models import ConstructionProject, Craftsman, DataEntry, House, HousePhoto, Person, VillagePortal
from .payloads import FieldSubmission, build_submission, require_schema
from .resolver import create_craftsman, find_craftsman, resolve_applicant
from .store import RegistryStore, Transaction
from .validation import validate_submission

logger = logging.getLogger(__name__)

SUBMISSION_SCHEMA = "field_submission.v1.schema.json"

PROJECT_TYPE_BY_HOUSE_TYPE = {
    "NEW_BUILD": "NEW_CONSTRUCTION",
    "RENOVATION": "RENOVATION",
    "EXPANSION": "EXPANSION",
    "REPAIR": "REPAIR",
}


@dataclass
class SubmissionResult:
    entry_id: str
    house_id: str
    address: str
    applicant_id: str
    applicant_name: str
    submitted_at: datetime
    craftsman_id: Optional[str] = None
    craftsman_name: Optional[str] = None
    project_id: Optional[str] = None
    photo_ids: List[str] = field(default_factory=list)
    warnings: List[Dict[str, str]] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "entryId": self.entry_id,
            "houseId": self.house_id,
            "address": self.address,
            "applicantName": self.applicant_name,
            "submittedAt": self.submitted_at.isoformat(),
        }
        if self.craftsman_name:
            payload["craftsmanName"] = self.craftsman_name
        if self.warnings:
            payload["warnings"] = self.warnings
        return payload


def load_village(tx: Transaction, village_code: str, scope: AccessScope) -> VillagePortal:
    village = tx.objects(VillagePortal).filter(village_code=village_code).first()
    if not village:
        raise VillageNotFound()
    if not village.is_active:
        raise VillageInactive()
    if not authorize(scope, village.region_code):
        raise AccessDenied("无权在该村庄提交数据")
    return village


class FieldSubmissionService:
    def __init__(
        self,
        store: RegistryStore,
        *,
        audit: Optional[AuditSink] = None,
        drafts: Optional[DraftStore] = None,
    ):
        self.store = store
        self.audit = audit or AuditSink(store)
        self.drafts = drafts or DraftStore(store)

    def submit(
        self,
        village_code: str,
        data: Dict[str, Any],
        scope: AccessScope,
        *,
        meta: Optional[RequestMeta] = None,
        waived_templates: Iterable[str] = (),
    ) -> SubmissionResult:
        region_code = scope.region_code
        try:
            require_schema({"villageCode": village_code, "data": data}, SUBMISSION_SCHEMA)
            village = load_village(self.store.reader(), village_code, scope)
            region_code = village.region_code
            submission = build_submission(data, village.data_templates)
            violations = validate_submission(data, submission.templates, waived_templates)
            if violations:
                raise BusinessRuleViolation(details=violations)
            with self.store.atomic() as tx:
                result = self._ingest(tx, village, submission, scope)
        except IntakeError as exc:
            if isinstance(exc, InternalIntakeError):
                logger.exception("submission failed village=%s user=%s: %s", village_code, scope.user_id, exc.message)
            else:
                logger.info(
                    "submission rejected: %s",
                    exc.code,
                    extra={"village_code": village_code, "submitter": scope.user_id, "details": exc.details},
                )
            self._record_failure(village_code, scope, region_code, exc, meta)
            raise
        except Exception as exc:
            logger.exception("submission failed village=%s user=%s", village_code, scope.user_id)
            error = InternalIntakeError(str(exc) or exc.__class__.__name__)
            self._record_failure(village_code, scope, region_code, error, meta)
            raise error from exc

        self.audit.record(
            action="CREATE",
            resource="data_entry",
            resource_id=result.entry_id,
            status="SUCCESS",
            user_id=scope.user_id,
            region_code=region_code,
            metadata={
                "villageCode": village_code,
                "houseId": result.house_id,
                "address": result.address,
                "applicantName": result.applicant_name,
                "craftsmanName": result.craftsman_name,
            },
            meta=meta,
        )
        logger.info("submission stored village=%s entry=%s house=%s", village_code, result.entry_id, result.house_id)
        return result

    def _record_failure(
        self,
        village_code: str,
        scope: AccessScope,
        region_code: str,
        error: IntakeError,
        meta: Optional[RequestMeta],
    ) -> None:
        self.audit.record(
            action="CREATE",
            resource="data_entry",
            resource_id="unknown",
            status="FAILED",
            user_id=scope.user_id,
            region_code=region_code,
            message=error.message,
            metadata={"villageCode": village_code, "error": error.code, "details": error.details},
            meta=meta,
        )

    def _ingest(
        self, tx: Transaction, village: VillagePortal, submission: FieldSubmission, scope: AccessScope
    ) -> SubmissionResult:
        applicant = resolve_applicant(tx, submission.applicant, scope)
        craftsman = self._resolve_craftsman(tx, submission, scope)
        house = self._create_house(tx, village, submission, applicant)

        project = None
        if craftsman is not None:
            project = tx.objects(ConstructionProject).create(
                house=house,
                craftsman=craftsman,
                project_name=f"{house.address} 建设项目",
                project_type=PROJECT_TYPE_BY_HOUSE_TYPE.get(house.house_type, "NEW_CONSTRUCTION"),
                start_date=submission.construction.start_date,
                end_date=submission.construction.expected_completion_date,
                description=submission.craftsman.work_description or submission.construction.progress_description,
                project_status="IN_PROGRESS",
            )

        now = timezone.now()
        photos = [
            HousePhoto(
                house=house,
                photo_url=url,
                photo_type="DURING",
                description=f"建设过程照片 {index}",
                taken_at=now,
                uploaded_by_id=scope.user_id,
            )
            for index, url in enumerate(submission.construction.photo_urls, start=1)
        ]
        if photos:
            tx.objects(HousePhoto).bulk_create(photos)

        entry = tx.objects(DataEntry).create(
            village_id=village.village_code,
            house=house,
            submitted_by_id=scope.user_id,
            form_data=submission.raw,
            normalization_notes=submission.normalization_notes(),
            status="SUBMITTED",
        )
        self.drafts.delete(village.village_code, scope.user_id, tx=tx)

        return SubmissionResult(
            entry_id=str(entry.id),
            house_id=str(house.id),
            address=house.address,
            applicant_id=str(applicant.id),
            applicant_name=applicant.real_name,
            submitted_at=entry.created_at,
            craftsman_id=str(craftsman.id) if craftsman else None,
            craftsman_name=craftsman.name if craftsman else None,
            project_id=str(project.id) if project else None,
            photo_ids=[str(photo.id) for photo in photos],
            warnings=submission.normalization_notes(),
        )

    def _resolve_craftsman(
        self, tx: Transaction, submission: FieldSubmission, scope: AccessScope
    ) -> Optional[Craftsman]:
        section = submission.craftsman
        if section.declares_new:
            return create_craftsman(tx, section.candidate, scope)
        if section.craftsman_id:
            craftsman = find_craftsman(tx, section.craftsman_id)
            if craftsman is None:
                logger.info("referenced craftsman %s not found, skipping project", section.craftsman_id)
            return craftsman
        return None

    def _create_house(
        self, tx: Transaction, village: VillagePortal, submission: FieldSubmission, applicant: Person
    ) -> House:
        section = submission.house
        if settings.RURALHOUSING_ENFORCE_UNIQUE_ADDRESS:
            taken = tx.objects(House).filter(
                address=section.address, region_code=village.region_code, is_active=True
            )
            if taken.exists():
                raise DuplicateAddress(details=[{"field": "address", "value": section.address}])
        return tx.objects(House).create(
            address=section.address,
            floors=section.floors,
            height=section.height,
            building_area=section.building_area,
            land_area=section.land_area,
            house_type=section.house_type.value,
            construction_status=section.construction_status.value,
            building_time=section.building_time,
            completion_time=section.completion_time,
            coordinates=section.coordinates,
            remarks=section.remarks,
            applicant=applicant,
            region_code=village.region_code,
            region_name=village.region_name or settings.RURALHOUSING_DEFAULT_REGION_NAME,
        )
