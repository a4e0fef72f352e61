from django.contrib.auth import get_user_model

from housing_registry.access import AccessScope
from housing_registry.models import Person, VillagePortal

ALL_TEMPLATES = ["house_basic", "house_construction", "craftsman_info"]


def make_staff(username: str, role: str = "district_admin", region_code: str = "370214", region_name: str = "城阳区"):
    user = get_user_model().objects.create_user(username=username, password="pass")
    Person.objects.create(
        user=user,
        username=username,
        real_name=username,
        role=role,
        region_code=region_code,
        region_name=region_name,
    )
    return user


def scope_of(user, role: str = "", region_code: str = "") -> AccessScope:
    person = user.person
    return AccessScope(
        user_id=user.pk,
        role=role or person.role,
        region_code=region_code or person.region_code,
        region_name=person.region_name,
    )


def make_village(
    code: str = "370214001001",
    region_code: str = "370214",
    templates=None,
    is_active: bool = True,
    name: str = "东流亭村",
) -> VillagePortal:
    return VillagePortal.objects.create(
        village_name=name,
        village_code=code,
        region_code=region_code,
        region_name="城阳区",
        is_active=is_active,
        data_templates=list(ALL_TEMPLATES if templates is None else templates),
    )
