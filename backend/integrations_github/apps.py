from django.apps import AppConfig


class IntegrationsGithubConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "integrations_github"
    verbose_name = "GitHub Releases"
