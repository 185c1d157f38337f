from django.apps import AppConfig


class UsersConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'roi_backend.apps.users'

    def ready(self):
        import roi_backend.apps.users.signals  # noqa
