from django.apps import AppConfig


class TransformationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "transformations"
    verbose_name = "Transformations"
