from __future__ import annotations

from django.urls import include, path

urlpatterns = [
    path("panel/api/", include("panel.urls")),
    path("api/scheduler/", include("scheduler.urls")),
]
