from unittest import mock

from django.db import DatabaseError
from django.db.models.query import QuerySet
from django.test import TestCase, override_settings

from housing_registry.audit import AuditSink, RequestMeta
from housing_registry.drafts import DraftStore
from housing_registry.errors import (
    AccessDenied,
    BusinessRuleViolation,
    DuplicateAddress,
    DuplicateIdentity,
    InternalIntakeError,
    PayloadInvalid,
    VillageInactive,
    VillageNotFound,
)
from housing_registry.ingestion import FieldSubmissionService
from housing_registry.models import (
    AuditLog,
    ConstructionProject,
    Craftsman,
    DataEntry,
    DraftSubmission,
    House,
    HousePhoto,
    Person,
    VillagePortal,
)
from housing_registry.store import RegistryStore

from .support import make_staff, make_village, scope_of

NEW_CRAFTSMAN = {
    "isNewCraftsman": True,
    "craftsmanName": "李师傅",
    "craftsmanPhone": "13800138000",
    "craftsmanIdNumber": "37021219800101123X",
    "skillLevel": "高级",
    "workDescription": "主体砌筑",
}


class IngestionTestCase(TestCase):
    def setUp(self):
        self.store = RegistryStore()
        self.service = FieldSubmissionService(self.store)
        self.user = make_staff("collector", role="district_admin", region_code="370214")
        self.scope = scope_of(self.user)
        self.village = make_village()

    def payload(self, **overrides):
        data = {
            "address": "城阳区流亭街道东流亭村1号",
            "applicantName": "张三",
            "phone": "13912345678",
            "idNumber": "11010119900101123X",
        }
        data.update(overrides)
        return data

    def submit(self, data, village_code=None, scope=None):
        return self.service.submit(village_code or self.village.village_code, data, scope or self.scope)

    def assert_nothing_persisted(self):
        self.assertEqual(Person.objects.filter(role="farmer").count(), 0)
        self.assertEqual(Craftsman.objects.count(), 0)
        self.assertEqual(House.objects.count(), 0)
        self.assertEqual(ConstructionProject.objects.count(), 0)
        self.assertEqual(HousePhoto.objects.count(), 0)
        self.assertEqual(DataEntry.objects.count(), 0)


class SubmissionScenarioTests(IngestionTestCase):
    def setUp(self):
        super().setUp()
        self.village = make_village(code="V1", templates=["house_basic", "house_construction"])

    def test_in_progress_without_start_date_is_rejected(self):
        data = {"address": "A1", "applicantName": "Zhang", "idNumber": "11010119900101123X", "constructionStatus": "IN_PROGRESS"}
        with self.assertRaises(BusinessRuleViolation) as ctx:
            self.submit(data)
        self.assertEqual(ctx.exception.code, "BUSINESS_VALIDATION_ERROR")
        self.assertEqual([item["field"] for item in ctx.exception.details], ["startDate"])
        self.assert_nothing_persisted()

    def test_in_progress_with_start_date_and_no_craftsman(self):
        data = {
            "address": "A1",
            "applicantName": "Zhang",
            "idNumber": "11010119900101123X",
            "constructionStatus": "IN_PROGRESS",
            "startDate": "2024-01-01",
        }
        result = self.submit(data)
        house = House.objects.get(pk=result.house_id)
        self.assertEqual(house.construction_status, "IN_PROGRESS")
        self.assertEqual(house.region_code, "370214")
        self.assertEqual(ConstructionProject.objects.count(), 0)
        self.assertIsNone(result.craftsman_name)
        entry = DataEntry.objects.get(pk=result.entry_id)
        self.assertEqual(entry.form_data, data)
        self.assertEqual(entry.status, "SUBMITTED")
        self.assertEqual(entry.village_id, "V1")

    def test_same_id_number_resolves_to_first_applicant(self):
        first = self.submit({"address": "A1", "applicantName": "Zhang", "idNumber": "11010119900101123X"})
        second = self.submit({"address": "A2", "applicantName": "Zhang San", "idNumber": "11010119900101123X"})
        self.assertEqual(first.applicant_id, second.applicant_id)
        self.assertEqual(second.applicant_name, "Zhang")
        self.assertEqual(Person.objects.filter(role="farmer").count(), 1)
        self.assertEqual(House.objects.filter(applicant_id=first.applicant_id).count(), 2)


class SubmissionFlowTests(IngestionTestCase):
    def test_full_submission_creates_every_record(self):
        photos = ["https://files.example/1.jpg", "https://files.example/2.jpg"]
        result = self.submit(
            self.payload(
                constructionStatus="UNDER_CONSTRUCTION",
                houseType="RURAL_HOUSE",
                floors=2,
                height=6.8,
                area=160.5,
                startDate="2024-03-01",
                expectedCompletionDate="2024-09-30",
                constructionPhotos=photos,
                **NEW_CRAFTSMAN,
            )
        )
        house = House.objects.get(pk=result.house_id)
        self.assertEqual(house.house_type, "NEW_BUILD")
        self.assertEqual(str(house.height), "6.80")
        craftsman = Craftsman.objects.get()
        self.assertEqual(craftsman.skill_level, "ADVANCED")
        self.assertEqual(result.craftsman_name, "李师傅")
        project = ConstructionProject.objects.get()
        self.assertEqual(project.house_id, house.id)
        self.assertEqual(project.craftsman_id, craftsman.id)
        self.assertEqual(project.project_name, f"{house.address} 建设项目")
        self.assertEqual(project.description, "主体砌筑")
        self.assertEqual(str(project.end_date), "2024-09-30")
        stored = HousePhoto.objects.filter(house=house).order_by("description")
        self.assertEqual([photo.photo_url for photo in stored], photos)
        self.assertTrue(all(photo.photo_type == "DURING" for photo in stored))
        self.assertEqual(stored[0].uploaded_by_id, self.user.pk)
        self.assertEqual(result.warnings, [])

    def test_existing_craftsman_reference(self):
        craftsman = Craftsman.objects.create(
            name="老王", id_number="37021219700101123X", phone="13800000000", region_code="370214"
        )
        self.submit(self.payload(craftsmanId=str(craftsman.id)))
        self.assertEqual(ConstructionProject.objects.get().craftsman_id, craftsman.id)
        self.assertEqual(Craftsman.objects.count(), 1)

    def test_missing_craftsman_reference_skips_project(self):
        result = self.submit(self.payload(craftsmanId="3f0c7f2e-5d8e-4c55-9f38-0d6c1f3b2a10"))
        self.assertTrue(House.objects.filter(pk=result.house_id).exists())
        self.assertEqual(ConstructionProject.objects.count(), 0)

    def test_unknown_enums_fall_back_with_warnings(self):
        result = self.submit(self.payload(houseType="商业用房", constructionStatus="快完了"))
        house = House.objects.get(pk=result.house_id)
        self.assertEqual(house.house_type, "NEW_BUILD")
        self.assertEqual(house.construction_status, "PLANNED")
        self.assertEqual([w["field"] for w in result.warnings], ["houseType", "constructionStatus"])
        entry = DataEntry.objects.get(pk=result.entry_id)
        self.assertEqual(entry.normalization_notes, result.warnings)
        self.assertEqual(result.to_payload()["warnings"], result.warnings)

    def test_successful_submission_clears_draft(self):
        drafts = DraftStore(self.store)
        drafts.save(self.village.village_code, self.user.pk, 2, {"address": "half done"})
        other = make_village(code="370214001002")
        drafts.save(other.village_code, self.user.pk, 1, {})
        self.submit(self.payload())
        self.assertFalse(
            DraftSubmission.objects.filter(village_code=self.village.village_code, user=self.user).exists()
        )
        self.assertTrue(DraftSubmission.objects.filter(village_code=other.village_code, user=self.user).exists())

    def test_village_portal_is_not_mutated(self):
        before = VillagePortal.objects.get(pk=self.village.pk).updated_at
        self.submit(self.payload())
        self.assertEqual(VillagePortal.objects.get(pk=self.village.pk).updated_at, before)


class PreconditionTests(IngestionTestCase):
    def test_unknown_village(self):
        with self.assertRaises(VillageNotFound):
            self.submit(self.payload(), village_code="999999")
        self.assert_nothing_persisted()

    def test_inactive_village(self):
        make_village(code="370214001009", is_active=False)
        with self.assertRaises(VillageInactive):
            self.submit(self.payload(), village_code="370214001009")
        self.assert_nothing_persisted()

    def test_region_outside_scope(self):
        make_village(code="370212001001", region_code="370212")
        with self.assertRaises(AccessDenied):
            self.submit(self.payload(), village_code="370212001001")
        self.assert_nothing_persisted()

    def test_top_tier_bypasses_region(self):
        city = scope_of(make_staff("city", role="city_admin", region_code="3702"))
        make_village(code="370212001001", region_code="370212")
        result = self.submit(self.payload(), village_code="370212001001", scope=city)
        self.assertEqual(House.objects.get(pk=result.house_id).region_code, "370212")

    def test_transport_shape_is_checked_first(self):
        with self.assertRaises(PayloadInvalid):
            self.submit({"address": "A1", "floors": "two"}, village_code="999999")

    def test_non_finite_amounts_are_transport_errors(self):
        for value in (float("nan"), float("inf")):
            with self.assertRaises(PayloadInvalid) as ctx:
                self.submit(self.payload(height=value))
            self.assertEqual(ctx.exception.details[0]["field"], "data.height")
        self.assert_nothing_persisted()

    def test_duplicate_craftsman_id_is_a_conflict(self):
        Craftsman.objects.create(name="先到", id_number=NEW_CRAFTSMAN["craftsmanIdNumber"], phone="13800000000", region_code="370214")
        with self.assertRaises(DuplicateIdentity):
            self.submit(self.payload(**NEW_CRAFTSMAN))
        self.assertEqual(House.objects.count(), 0)
        self.assertEqual(Person.objects.filter(role="farmer").count(), 0)

    def test_duplicate_address_in_region_is_a_conflict(self):
        self.submit(self.payload())
        with self.assertRaises(DuplicateAddress):
            self.submit(self.payload(applicantName="李四", idNumber="", phone=""))
        self.assertEqual(House.objects.count(), 1)
        self.assertEqual(Person.objects.filter(role="farmer").count(), 1)

    @override_settings(RURALHOUSING_ENFORCE_UNIQUE_ADDRESS=False)
    def test_duplicate_address_allowed_when_check_disabled(self):
        self.submit(self.payload())
        self.submit(self.payload())
        self.assertEqual(House.objects.count(), 2)


class AtomicityTests(IngestionTestCase):
    """A failure at any write step leaves nothing from the attempt behind."""

    def full_payload(self):
        return self.payload(
            constructionStatus="IN_PROGRESS",
            startDate="2024-03-01",
            constructionPhotos=["https://files.example/1.jpg"],
            **NEW_CRAFTSMAN,
        )

    def _assert_rolled_back(self, target, attribute, **kwargs):
        DraftStore(self.store).save(self.village.village_code, self.user.pk, 3, {"keep": True})
        with mock.patch.object(target, attribute, side_effect=DatabaseError("boom"), **kwargs):
            with self.assertRaises(InternalIntakeError):
                self.submit(self.full_payload())
        self.assert_nothing_persisted()
        self.assertTrue(DraftSubmission.objects.filter(user=self.user).exists())

    def test_applicant_step(self):
        self._assert_rolled_back(Person, "save")

    def test_craftsman_step(self):
        self._assert_rolled_back(Craftsman, "save")

    def test_house_step(self):
        self._assert_rolled_back(House, "save")

    def test_project_step(self):
        self._assert_rolled_back(ConstructionProject, "save")

    def test_photo_step(self):
        self._assert_rolled_back(QuerySet, "bulk_create")

    def test_data_entry_step(self):
        self._assert_rolled_back(DataEntry, "save")

    def test_draft_step(self):
        self._assert_rolled_back(DraftStore, "delete")

    def test_internal_errors_hide_the_cause(self):
        with mock.patch.object(House, "save", side_effect=DatabaseError("disk full")):
            with self.assertRaises(InternalIntakeError) as ctx:
                self.submit(self.payload())
        payload = ctx.exception.to_payload()
        self.assertEqual(payload["error"], "INTERNAL_ERROR")
        self.assertNotIn("disk full", payload["message"])


class AuditTrailTests(IngestionTestCase):
    def test_success_writes_one_entry(self):
        meta = RequestMeta(ip_address="10.0.0.8", user_agent="pytest")
        result = self.service.submit(self.village.village_code, self.payload(), self.scope, meta=meta)
        log = AuditLog.objects.get()
        self.assertEqual((log.action, log.resource, log.status), ("CREATE", "data_entry", "SUCCESS"))
        self.assertEqual(log.resource_id, result.entry_id)
        self.assertEqual(log.region_code, "370214")
        self.assertEqual(log.ip_address, "10.0.0.8")
        self.assertEqual(log.created_by_id, self.user.pk)

    def test_every_failure_writes_one_entry(self):
        attempts = [
            ("999999", self.payload()),
            (self.village.village_code, {"address": "A1"}),
            (self.village.village_code, self.payload(phone="123")),
        ]
        for village_code, data in attempts:
            with self.assertRaises(Exception):
                self.submit(data, village_code=village_code)
        logs = list(AuditLog.objects.order_by("created_at"))
        self.assertEqual(len(logs), 3)
        self.assertTrue(all(log.status == "FAILED" for log in logs))
        self.assertEqual(
            sorted(log.metadata_json["error"] for log in logs),
            ["BUSINESS_VALIDATION_ERROR", "VALIDATION_ERROR", "VILLAGE_NOT_FOUND"],
        )

    def test_audit_failure_does_not_fail_submission(self):
        with mock.patch.object(AuditLog, "save", side_effect=DatabaseError("audit down")):
            with self.assertLogs("housing_registry.audit", level="ERROR"):
                result = self.submit(self.payload())
        self.assertTrue(DataEntry.objects.filter(pk=result.entry_id).exists())
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_sink_can_be_injected(self):
        sink = mock.Mock(spec=AuditSink)
        service = FieldSubmissionService(self.store, audit=sink)
        service.submit(self.village.village_code, self.payload(), self.scope)
        sink.record.assert_called_once()
        self.assertEqual(sink.record.call_args.kwargs["status"], "SUCCESS")
