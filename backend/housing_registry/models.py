import uuid

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


ROLE_CHOICES = [
    ("super_admin", "Super Admin"),
    ("city_admin", "City Admin"),
    ("district_admin", "District Admin"),
    ("town_admin", "Town Admin"),
    ("inspector", "Inspector"),
    ("craftsman", "Craftsman"),
    ("farmer", "Farmer"),
]


class Person(models.Model):
    """Applicants, craftsmen-as-people and staff accounts.

    Staff are linked to a Django user and carry the role tier and region code
    that scope what they may touch. Applicants created during field-data
    ingestion have no linked user.
    """

    STATUS_CHOICES = [
        ("active", "Active"),
        ("inactive", "Inactive"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        "auth.User", null=True, blank=True, on_delete=models.SET_NULL, related_name="person"
    )
    username = models.CharField(max_length=120, unique=True)
    password = models.CharField(max_length=200, blank=True)
    real_name = models.CharField(max_length=100)
    phone = models.CharField(max_length=20, blank=True)
    id_number = models.CharField(max_length=18, unique=True, null=True, blank=True)
    address = models.CharField(max_length=300, blank=True)
    role = models.CharField(max_length=30, choices=ROLE_CHOICES, default="farmer")
    region_code = models.CharField(max_length=20, db_index=True)
    region_name = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="active")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.real_name} ({self.role})"


class Team(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    region_code = models.CharField(max_length=20, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Craftsman(models.Model):
    SKILL_LEVEL_CHOICES = [
        ("BEGINNER", "Beginner"),
        ("INTERMEDIATE", "Intermediate"),
        ("ADVANCED", "Advanced"),
        ("EXPERT", "Expert"),
    ]
    STATUS_CHOICES = [
        ("ACTIVE", "Active"),
        ("INACTIVE", "Inactive"),
        ("SUSPENDED", "Suspended"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    id_number = models.CharField(max_length=18, unique=True)
    phone = models.CharField(max_length=20)
    specialties = models.JSONField(default=list, blank=True)
    skill_level = models.CharField(max_length=20, choices=SKILL_LEVEL_CHOICES, default="INTERMEDIATE")
    credit_score = models.PositiveSmallIntegerField(
        default=100, validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    team = models.ForeignKey(Team, null=True, blank=True, on_delete=models.SET_NULL, related_name="craftsmen")
    region_code = models.CharField(max_length=20, db_index=True)
    region_name = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="ACTIVE")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class House(models.Model):
    HOUSE_TYPE_CHOICES = [
        ("NEW_BUILD", "New build"),
        ("RENOVATION", "Renovation"),
        ("EXPANSION", "Expansion"),
        ("REPAIR", "Repair"),
    ]
    CONSTRUCTION_STATUS_CHOICES = [
        ("PLANNED", "Planned"),
        ("APPROVED", "Approved"),
        ("IN_PROGRESS", "In progress"),
        ("COMPLETED", "Completed"),
        ("SUSPENDED", "Suspended"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    address = models.CharField(max_length=300)
    floors = models.PositiveSmallIntegerField(null=True, blank=True)
    height = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    building_area = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    land_area = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    house_type = models.CharField(max_length=20, choices=HOUSE_TYPE_CHOICES, default="NEW_BUILD")
    construction_status = models.CharField(max_length=20, choices=CONSTRUCTION_STATUS_CHOICES, default="PLANNED")
    building_time = models.DateField(null=True, blank=True)
    completion_time = models.DateField(null=True, blank=True)
    coordinates = models.CharField(max_length=60, blank=True)
    remarks = models.TextField(blank=True)
    applicant = models.ForeignKey(Person, on_delete=models.PROTECT, related_name="houses")
    region_code = models.CharField(max_length=20, db_index=True)
    region_name = models.CharField(max_length=100, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["region_code", "address"], name="house_region_address_idx")]

    def __str__(self) -> str:
        return self.address


class ConstructionProject(models.Model):
    PROJECT_TYPE_CHOICES = [
        ("NEW_CONSTRUCTION", "New construction"),
        ("RENOVATION", "Renovation"),
        ("EXPANSION", "Expansion"),
        ("REPAIR", "Repair"),
    ]
    STATUS_CHOICES = [
        ("PLANNED", "Planned"),
        ("IN_PROGRESS", "In progress"),
        ("COMPLETED", "Completed"),
        ("SUSPENDED", "Suspended"),
        ("CANCELLED", "Cancelled"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    house = models.ForeignKey(House, on_delete=models.CASCADE, related_name="construction_projects")
    craftsman = models.ForeignKey(Craftsman, on_delete=models.PROTECT, related_name="construction_projects")
    project_name = models.CharField(max_length=300)
    project_type = models.CharField(max_length=30, choices=PROJECT_TYPE_CHOICES, default="NEW_CONSTRUCTION")
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    description = models.TextField(blank=True)
    project_status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="IN_PROGRESS")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.project_name


class HousePhoto(models.Model):
    PHOTO_TYPE_CHOICES = [
        ("BEFORE", "Before construction"),
        ("DURING", "During construction"),
        ("AFTER", "After construction"),
        ("INSPECTION", "Inspection"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    house = models.ForeignKey(House, on_delete=models.CASCADE, related_name="photos")
    photo_url = models.CharField(max_length=500)
    photo_type = models.CharField(max_length=20, choices=PHOTO_TYPE_CHOICES, default="DURING")
    description = models.CharField(max_length=200, blank=True)
    taken_at = models.DateTimeField(null=True, blank=True)
    uploaded_by = models.ForeignKey(
        "auth.User", null=True, blank=True, on_delete=models.SET_NULL, related_name="house_photos"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self) -> str:
        return self.photo_url


class VillagePortal(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    village_name = models.CharField(max_length=100)
    village_code = models.CharField(max_length=12, unique=True)
    region_code = models.CharField(max_length=20, db_index=True)
    region_name = models.CharField(max_length=100, blank=True)
    is_active = models.BooleanField(default=True)
    data_templates = models.JSONField(default=list, blank=True)
    created_by = models.ForeignKey(
        "auth.User", null=True, blank=True, on_delete=models.SET_NULL, related_name="village_portals"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.village_name} ({self.village_code})"

    @property
    def portal_url(self) -> str:
        return f"/data-collection/village/{self.village_code}"


class DataEntry(models.Model):
    STATUS_CHOICES = [
        ("SUBMITTED", "Submitted"),
        ("REVIEWED", "Reviewed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    village = models.ForeignKey(
        VillagePortal,
        to_field="village_code",
        db_column="village_code",
        on_delete=models.PROTECT,
        related_name="data_entries",
    )
    house = models.ForeignKey(House, on_delete=models.PROTECT, related_name="data_entries")
    submitted_by = models.ForeignKey(
        "auth.User", null=True, on_delete=models.SET_NULL, related_name="data_entries"
    )
    form_data = models.JSONField(default=dict)
    normalization_notes = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="SUBMITTED")
    reviewed_by = models.ForeignKey(
        "auth.User", null=True, blank=True, on_delete=models.SET_NULL, related_name="reviewed_data_entries"
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    review_notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "data entries"

    def __str__(self) -> str:
        return f"{self.village_id} -> {self.house_id}"


class DraftSubmission(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    village_code = models.CharField(max_length=12)
    user = models.ForeignKey("auth.User", on_delete=models.CASCADE, related_name="draft_submissions")
    current_step = models.PositiveIntegerField(default=0)
    form_data = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at"]
        constraints = [
            models.UniqueConstraint(fields=["village_code", "user"], name="draft_submission_village_user_uniq"),
        ]

    def __str__(self) -> str:
        return f"{self.village_code}:{self.user_id} step {self.current_step}"


class AuditLog(models.Model):
    STATUS_CHOICES = [
        ("SUCCESS", "Success"),
        ("FAILED", "Failed"),
        ("PARTIAL_SUCCESS", "Partial success"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    action = models.CharField(max_length=30)
    resource = models.CharField(max_length=60)
    resource_id = models.CharField(max_length=64, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="SUCCESS")
    message = models.TextField(blank=True)
    region_code = models.CharField(max_length=20, blank=True, db_index=True)
    ip_address = models.CharField(max_length=64, blank=True)
    user_agent = models.CharField(max_length=300, blank=True)
    metadata_json = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.ForeignKey(
        "auth.User", null=True, blank=True, on_delete=models.SET_NULL, related_name="audit_logs"
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.action} {self.resource} {self.status}"
