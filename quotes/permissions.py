# quotes/permissions.py
from rest_framework import permissions


class IsQuoteModerator(permissions.BasePermission):
    """
    Allows access only to administrators who handle quote requests.
    """
    message = 'Administrator access is required to manage quote requests.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.can_moderate_quotes)
