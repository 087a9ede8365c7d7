from django.apps import AppConfig


class MorgueConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'morgue'
