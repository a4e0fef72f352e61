from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import IntegrityError, transaction

from housing_registry.models import ROLE_CHOICES, Person


class Command(BaseCommand):
    help = "Attach a role tier and region code to an existing Django user."

    def add_arguments(self, parser):
        parser.add_argument("--username", required=True)
        parser.add_argument("--role", required=True, choices=[value for value, _ in ROLE_CHOICES])
        parser.add_argument("--region-code", required=True)
        parser.add_argument("--region-name", default="")
        parser.add_argument("--real-name", default="")

    def handle(self, *args, **options):
        user = get_user_model().objects.filter(username=options["username"]).first()
        if not user:
            raise CommandError(f"User {options['username']} not found.")
        try:
            with transaction.atomic():
                person, created = Person.objects.update_or_create(
                    user=user,
                    defaults={
                        "username": user.username,
                        "real_name": options["real_name"] or user.get_full_name() or user.username,
                        "role": options["role"],
                        "region_code": options["region_code"],
                        "region_name": options["region_name"],
                        "status": "active",
                    },
                )
        except IntegrityError as exc:
            raise CommandError(f"Person username {user.username} is already held by another record.") from exc
        verb = "Granted" if created else "Updated"
        self.stdout.write(f"{verb} {person.role} scope {person.region_code} for {user.username}.")
