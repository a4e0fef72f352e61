import logging
import secrets
import time
import uuid
from typing import Optional

from django.conf import settings
from django.contrib.auth.hashers import make_password
from django.db import IntegrityError

from .access import AccessScope
from .errors import DuplicateIdentity, InternalIntakeError
from .models import Craftsman, Person, Team
from .payloads import ApplicantCandidate, CraftsmanCandidate
from .store import Transaction

logger = logging.getLogger(__name__)

APPLICANT_ROLE = "farmer"


def _region_name(scope: AccessScope) -> str:
    return scope.region_name or settings.RURALHOUSING_DEFAULT_REGION_NAME


def _as_uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def generate_username() -> str:
    return f"farmer_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def find_applicant(tx: Transaction, candidate: ApplicantCandidate, scope: AccessScope) -> Optional[Person]:
    people = tx.objects(Person)
    if candidate.id_number:
        match = people.filter(id_number=candidate.id_number).first()
        if match:
            return match
    if candidate.phone:
        match = people.filter(phone=candidate.phone).order_by("created_at").first()
        if match:
            return match
    return (
        people.filter(real_name=candidate.name, region_code=scope.region_code)
        .order_by("created_at")
        .first()
    )


def resolve_applicant(tx: Transaction, candidate: ApplicantCandidate, scope: AccessScope) -> Person:
    """Find the applicant by ID number, then phone, then name within the region, or create one.

    Existing people are returned untouched even when the submitted fields differ.
    """
    existing = find_applicant(tx, candidate, scope)
    if existing:
        return existing
    try:
        with tx.savepoint():
            person = tx.objects(Person).create(
                username=generate_username(),
                password=make_password(settings.RURALHOUSING_APPLICANT_DEFAULT_PASSWORD),
                real_name=candidate.name,
                phone=candidate.phone,
                id_number=candidate.id_number or None,
                address=candidate.address,
                role=APPLICANT_ROLE,
                region_code=scope.region_code,
                region_name=_region_name(scope),
            )
    except IntegrityError as exc:
        if candidate.id_number and tx.objects(Person).filter(id_number=candidate.id_number).exists():
            raise DuplicateIdentity("申请人身份证号已存在", details=[{"field": "idNumber"}]) from exc
        raise InternalIntakeError("applicant username collision", retryable=True) from exc
    logger.info("created applicant person=%s region=%s", person.id, person.region_code)
    return person


def create_craftsman(tx: Transaction, candidate: CraftsmanCandidate, scope: AccessScope) -> Craftsman:
    if candidate.id_number and tx.objects(Craftsman).filter(id_number=candidate.id_number).exists():
        raise DuplicateIdentity("工匠身份证号已存在", details=[{"field": "craftsmanIdNumber"}])
    team = None
    team_uuid = _as_uuid(candidate.team_id) if candidate.team_id else None
    if team_uuid:
        team = tx.objects(Team).filter(id=team_uuid).first()
    try:
        with tx.savepoint():
            craftsman = tx.objects(Craftsman).create(
                name=candidate.name,
                id_number=candidate.id_number,
                phone=candidate.phone,
                specialties=list(candidate.specialties),
                skill_level=candidate.skill_level.value,
                team=team,
                region_code=scope.region_code,
                region_name=_region_name(scope),
                status="ACTIVE",
                credit_score=100,
            )
    except IntegrityError as exc:
        # Lost a race with a concurrent submission for the same ID number.
        raise DuplicateIdentity("工匠身份证号已存在", details=[{"field": "craftsmanIdNumber"}]) from exc
    logger.info("created craftsman=%s region=%s", craftsman.id, craftsman.region_code)
    return craftsman


def find_craftsman(tx: Transaction, craftsman_id: str) -> Optional[Craftsman]:
    craftsman_uuid = _as_uuid(craftsman_id)
    if not craftsman_uuid:
        return None
    return tx.objects(Craftsman).filter(id=craftsman_uuid).first()
