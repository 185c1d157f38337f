from django.apps import AppConfig


class InvestmentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "roi_backend.apps.investments"
    verbose_name = "Investments"
