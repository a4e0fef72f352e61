from unittest import mock

from django.db.models.query import QuerySet
from django.test import TestCase

from housing_registry.errors import DuplicateIdentity, InternalIntakeError
from housing_registry.models import Craftsman, Person, Team
from housing_registry.payloads import ApplicantCandidate, CraftsmanCandidate, Normalized
from housing_registry.resolver import create_craftsman, find_craftsman, resolve_applicant
from housing_registry.store import RegistryStore

from .support import make_staff, scope_of


class ApplicantResolutionTests(TestCase):
    def setUp(self):
        self.store = RegistryStore()
        self.scope = scope_of(make_staff("collector", role="town_admin", region_code="370214001"))

    def _resolve(self, **fields):
        with self.store.atomic() as tx:
            return resolve_applicant(tx, ApplicantCandidate(**fields), self.scope)

    def test_creates_farmer_in_submitter_region(self):
        person = self._resolve(name="王五", phone="13800138000", id_number="11010119900101123X")
        self.assertEqual(person.role, "farmer")
        self.assertEqual(person.region_code, "370214001")
        self.assertTrue(person.username.startswith("farmer_"))
        self.assertNotEqual(person.password, "")
        self.assertIsNone(person.user)

    def test_resolution_is_idempotent(self):
        fields = dict(name="王五", phone="13800138000", id_number="11010119900101123X")
        first = self._resolve(**fields)
        second = self._resolve(**fields)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(Person.objects.filter(role="farmer").count(), 1)

    def test_id_number_wins_over_name_and_phone(self):
        first = self._resolve(name="王五", phone="13800138000", id_number="11010119900101123X")
        again = self._resolve(name="王小五", phone="13900139000", id_number="11010119900101123X")
        self.assertEqual(again.pk, first.pk)
        self.assertEqual(again.real_name, "王五")

    def test_phone_then_name_within_region(self):
        by_phone = self._resolve(name="赵六", phone="13700137000")
        self.assertEqual(self._resolve(name="别名", phone="13700137000").pk, by_phone.pk)
        by_name = self._resolve(name="孙七")
        self.assertEqual(self._resolve(name="孙七").pk, by_name.pk)

    def test_same_name_in_other_region_is_a_new_person(self):
        local = self._resolve(name="周八")
        other_scope = scope_of(make_staff("collector-2", role="town_admin", region_code="370212001"))
        with self.store.atomic() as tx:
            remote = resolve_applicant(tx, ApplicantCandidate(name="周八"), other_scope)
        self.assertNotEqual(local.pk, remote.pk)

    def test_losing_the_id_number_race_is_a_conflict(self):
        existing = Person.objects.create(
            username="farmer_first", real_name="王五", id_number="11010119900101123X", region_code="370214001"
        )
        before = Person.objects.count()
        # Every lookup misses, as when the competing row committed after the reads.
        with mock.patch.object(QuerySet, "first", return_value=None):
            with self.assertRaises(DuplicateIdentity) as ctx:
                self._resolve(name="王五", id_number=existing.id_number)
        self.assertEqual(ctx.exception.details, [{"field": "idNumber"}])
        self.assertEqual(Person.objects.count(), before)

    def test_username_collision_is_retryable(self):
        before = Person.objects.count()
        with mock.patch("housing_registry.resolver.generate_username", return_value="collector"):
            with self.assertRaises(InternalIntakeError) as ctx:
                self._resolve(name="吴九", phone="13600136000")
        self.assertTrue(ctx.exception.retryable)
        self.assertTrue(ctx.exception.to_payload()["retryable"])
        self.assertEqual(Person.objects.count(), before)
        self.assertFalse(Person.objects.filter(real_name="吴九").exists())


class CraftsmanCreationTests(TestCase):
    def setUp(self):
        self.store = RegistryStore()
        self.scope = scope_of(make_staff("collector", role="district_admin", region_code="370214"))

    def _candidate(self, **overrides):
        fields = dict(
            name="李师傅",
            phone="13800138000",
            id_number="37021219800101123X",
            specialties=["砌筑"],
            skill_level=Normalized(value="ADVANCED", raw="高级"),
        )
        fields.update(overrides)
        return CraftsmanCandidate(**fields)

    def test_new_craftsman_defaults(self):
        team = Team.objects.create(name="流亭施工队", region_code="370214")
        with self.store.atomic() as tx:
            craftsman = create_craftsman(tx, self._candidate(team_id=str(team.id)), self.scope)
        self.assertEqual(craftsman.status, "ACTIVE")
        self.assertEqual(craftsman.credit_score, 100)
        self.assertEqual(craftsman.skill_level, "ADVANCED")
        self.assertEqual(craftsman.team_id, team.id)
        self.assertEqual(craftsman.region_code, "370214")

    def test_unknown_team_is_ignored(self):
        with self.store.atomic() as tx:
            craftsman = create_craftsman(tx, self._candidate(team_id="not-a-uuid"), self.scope)
        self.assertIsNone(craftsman.team)

    def test_duplicate_id_number_is_a_conflict(self):
        with self.store.atomic() as tx:
            create_craftsman(tx, self._candidate(), self.scope)
        with self.assertRaises(DuplicateIdentity):
            with self.store.atomic() as tx:
                create_craftsman(tx, self._candidate(name="另一位"), self.scope)
        self.assertEqual(Craftsman.objects.count(), 1)

    def test_losing_the_insert_race_is_a_conflict(self):
        with self.store.atomic() as tx:
            create_craftsman(tx, self._candidate(), self.scope)
        # The pre-check misses because the competing row committed after it ran.
        with mock.patch.object(QuerySet, "exists", return_value=False):
            with self.assertRaises(DuplicateIdentity):
                with self.store.atomic() as tx:
                    create_craftsman(tx, self._candidate(name="另一位"), self.scope)
        self.assertEqual(Craftsman.objects.count(), 1)

    def test_find_craftsman_tolerates_misses(self):
        tx = self.store.reader()
        self.assertIsNone(find_craftsman(tx, "garbage"))
        self.assertIsNone(find_craftsman(tx, "3f0c7f2e-5d8e-4c55-9f38-0d6c1f3b2a10"))
