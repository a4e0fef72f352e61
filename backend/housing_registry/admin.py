from django.contrib import admin

from .models import (
    AuditLog,
    ConstructionProject,
    Craftsman,
    DataEntry,
    DraftSubmission,
    House,
    HousePhoto,
    Person,
    Team,
    VillagePortal,
)


@admin.register(Person)
class PersonAdmin(admin.ModelAdmin):
    list_display = ("real_name", "role", "region_code", "phone", "status", "created_at")
    list_filter = ("role", "status")
    search_fields = ("real_name", "username", "phone", "id_number", "region_code")
    exclude = ("password",)
    raw_id_fields = ("user",)


@admin.register(Team)
class TeamAdmin(admin.ModelAdmin):
    list_display = ("name", "region_code", "created_at")
    search_fields = ("name", "region_code")


@admin.register(Craftsman)
class CraftsmanAdmin(admin.ModelAdmin):
    list_display = ("name", "skill_level", "credit_score", "region_code", "status")
    list_filter = ("skill_level", "status")
    search_fields = ("name", "id_number", "phone")


class HousePhotoInline(admin.TabularInline):
    model = HousePhoto
    extra = 0
    fields = ("photo_url", "photo_type", "description", "taken_at")


class ConstructionProjectInline(admin.TabularInline):
    model = ConstructionProject
    extra = 0
    fields = ("project_name", "craftsman", "project_type", "project_status", "start_date", "end_date")
    raw_id_fields = ("craftsman",)


@admin.register(House)
class HouseAdmin(admin.ModelAdmin):
    list_display = ("address", "house_type", "construction_status", "region_code", "is_active", "created_at")
    list_filter = ("house_type", "construction_status", "is_active")
    search_fields = ("address", "region_code", "applicant__real_name")
    raw_id_fields = ("applicant",)
    inlines = [ConstructionProjectInline, HousePhotoInline]


@admin.register(ConstructionProject)
class ConstructionProjectAdmin(admin.ModelAdmin):
    list_display = ("project_name", "project_type", "project_status", "start_date", "end_date")
    list_filter = ("project_type", "project_status")
    raw_id_fields = ("house", "craftsman")


@admin.register(VillagePortal)
class VillagePortalAdmin(admin.ModelAdmin):
    list_display = ("village_name", "village_code", "region_code", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("village_name", "village_code", "region_code")


@admin.register(DataEntry)
class DataEntryAdmin(admin.ModelAdmin):
    list_display = ("village", "house", "status", "submitted_by", "created_at")
    list_filter = ("status",)
    search_fields = ("village__village_code", "house__address")
    readonly_fields = ("village", "house", "submitted_by", "form_data", "normalization_notes", "created_at")


@admin.register(DraftSubmission)
class DraftSubmissionAdmin(admin.ModelAdmin):
    list_display = ("village_code", "user", "current_step", "updated_at")
    search_fields = ("village_code", "user__username")


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("action", "resource", "status", "region_code", "created_by", "created_at")
    list_filter = ("action", "status", "resource")
    search_fields = ("resource_id", "message", "region_code")
    readonly_fields = [field.name for field in AuditLog._meta.fields]

    def has_add_permission(self, request):
        return False
