from django.apps import AppConfig


class TrainsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "trains"

    def ready(self):
        from . import signals  # noqa: F401
