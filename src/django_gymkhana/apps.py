from django.apps import AppConfig


class DjangoGymkhanaConfig(AppConfig):
    name = "django_gymkhana"
    verbose_name = "Gymkhana Events"
    default_auto_field = "django.db.models.BigAutoField"
