from __future__ import annotations

from rest_framework.permissions import BasePermission


def is_admin(user) -> bool:
    """Return True for authenticated staff or superusers."""
    if user is None or not getattr(user, "is_authenticated", False):
        return False
    return bool(getattr(user, "is_superuser", False) or getattr(user, "is_staff", False))


class IsAdminRole(BasePermission):
    message = "Forbidden."

    def has_permission(self, request, view) -> bool:
        """Allow access only for panel admins."""
        return is_admin(request.user)
