from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from housing_registry.models import Person, VillagePortal

DEMO_STAFF = [
    ("qd_admin", "青岛市管理员", "city_admin", "3702", "青岛市"),
    ("chengyang_admin", "城阳区管理员", "district_admin", "370214", "城阳区"),
    ("laoshan_admin", "崂山区管理员", "district_admin", "370212", "崂山区"),
]

DEMO_VILLAGES = [
    ("城阳区流亭街道东流亭村", "370214001001", "370214", "城阳区", True, ["house_basic", "house_construction"]),
    ("城阳区流亭街道西流亭村", "370214001002", "370214", "城阳区", True, ["house_basic", "craftsman_info"]),
    ("市南区八大关街道太平角村", "370202001001", "370202", "市南区", True, ["house_basic", "house_construction"]),
    ("崂山区沙子口街道沙子口村", "370212001001", "370212", "崂山区", False, ["house_basic"]),
]


class Command(BaseCommand):
    help = "Seed demo staff accounts and village portals. Safe to run repeatedly."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="changeme123")
        parser.add_argument("--skip-staff", action="store_true")

    def handle(self, *args, **options):
        User = get_user_model()
        owner = None
        if not options["skip_staff"]:
            for username, real_name, role, region_code, region_name in DEMO_STAFF:
                user, created = User.objects.get_or_create(username=username)
                if created:
                    user.set_password(options["password"])
                    user.save(update_fields=["password"])
                Person.objects.update_or_create(
                    user=user,
                    defaults={
                        "username": username,
                        "real_name": real_name,
                        "role": role,
                        "region_code": region_code,
                        "region_name": region_name,
                    },
                )
                owner = owner or user
                self.stdout.write(f"{'Created' if created else 'Kept'} staff {username} ({role} {region_code})")

        for name, code, region_code, region_name, is_active, templates in DEMO_VILLAGES:
            _, created = VillagePortal.objects.get_or_create(
                village_code=code,
                defaults={
                    "village_name": name,
                    "region_code": region_code,
                    "region_name": region_name,
                    "is_active": is_active,
                    "data_templates": templates,
                    "created_by": owner,
                },
            )
            if created:
                self.stdout.write(self.style.SUCCESS(f"Created village {name} ({code})"))
            else:
                self.stdout.write(f"Village {code} already present.")
