from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.notifications'

    def ready(self):
        from .scheduler import is_serving_process, start_scheduler

        # Prevent duplicate schedulers from the autoreloader and one-off commands
        if not is_serving_process():
            return

        start_scheduler()
