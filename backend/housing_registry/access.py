"""Region-scoped authorization.

Region codes are hierarchical: a district code is a textual prefix of every
town and village code beneath it. Callers in a top-tier role see everything;
everyone else only sees codes that start with their own region code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from django.db.models import Q

TOP_TIER_ROLES = frozenset({"super_admin", "city_admin"})
VILLAGE_ADMIN_ROLES = frozenset({"super_admin", "city_admin", "district_admin"})


@dataclass(frozen=True)
class AccessScope:
    user_id: int
    role: str
    region_code: str
    region_name: str = ""

    @property
    def is_top_tier(self) -> bool:
        return self.role in TOP_TIER_ROLES


def authorize(scope: AccessScope, target_region_code: str) -> bool:
    if scope.is_top_tier:
        return True
    own = (scope.region_code or "").strip()
    if not own:
        return False
    return (target_region_code or "").startswith(own)


def region_q(scope: AccessScope, field: str = "region_code") -> Q:
    """Queryset filter equivalent of `authorize` for list endpoints."""
    if scope.is_top_tier:
        return Q()
    if not scope.region_code:
        return Q(pk__in=[])
    return Q(**{f"{field}__startswith": scope.region_code})


def audit_region_q(scope: AccessScope, field: str = "region_code") -> Q:
    if scope.is_top_tier:
        return Q()
    if not scope.region_code:
        return Q(pk__in=[])
    if scope.role == "district_admin":
        return Q(**{f"{field}__startswith": scope.region_code})
    return Q(**{field: scope.region_code})


def scope_for_user(user) -> Optional[AccessScope]:
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    from .models import Person

    person = Person.objects.filter(user=user, status="active").first()
    if not person:
        return None
    return AccessScope(
        user_id=user.pk,
        role=person.role,
        region_code=person.region_code,
        region_name=person.region_name,
    )
