from django.apps import AppConfig


class ProxyCoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "proxy_core"
    verbose_name = "Proxy Core Process"
