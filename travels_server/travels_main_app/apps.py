from django.apps import AppConfig


class TravelsMainAppConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'travels_main_app'
