from django.apps import AppConfig


class HousingRegistryConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "housing_registry"
    label = "housing_registry"
    verbose_name = "Rural housing registry"
