# quotes/apps.py

from django.apps import AppConfig


class QuotesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'quotes'
    verbose_name = 'Quote Requests'

    def ready(self):
        from . import signals  # noqa: F401
