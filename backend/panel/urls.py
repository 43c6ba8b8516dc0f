from __future__ import annotations

from django.urls import path

from panel import views


urlpatterns = [
    path("server/status", views.ServerStatusView.as_view(), name="panel-server-status"),
    path("server/restartCore", views.RestartCoreView.as_view(), name="panel-server-restart-core"),
    path("server/autoRestart", views.AutoRestartView.as_view(), name="panel-server-auto-restart"),
    path("inbounds/createbackup", views.CreateBackupView.as_view(), name="panel-inbounds-create-backup"),
]
