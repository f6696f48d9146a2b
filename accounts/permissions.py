"""
Permission gate for the fulfillment API.

Resources (``stock_requests``, ``delivery_notes``, ``pick_lists``) and actions
(``view``, ``edit``, ``approve``) map onto django-rules permissions registered in
``accounts.rbac``.

Usage Examples:
    from accounts.permissions import check_permission

    result = check_permission(request.user, 'delivery_notes', 'approve')
    if not result.allowed:
        return result.response
"""

from dataclasses import dataclass
from typing import Any, Optional

import rules
from rest_framework import permissions as drf_permissions
from rest_framework import status
from rest_framework.response import Response

from accounts import rbac


@dataclass
class PermissionCheck:
    """Outcome of the permission gate."""
    allowed: bool
    response: Optional[Response] = None


def check_permission(user, resource: str, action: str, obj: Optional[Any] = None) -> PermissionCheck:
    """
    Check ``action`` on ``resource`` for ``user``.

    Returns a PermissionCheck carrying a pre-built 401/403 response on denial.
    """
    if not user or not user.is_authenticated:
        return PermissionCheck(
            allowed=False,
            response=Response({'detail': 'Authentication required'}, status=status.HTTP_401_UNAUTHORIZED),
        )

    if resource not in rbac.FULFILLMENT_RESOURCES or action not in rbac.FULFILLMENT_ACTIONS:
        raise ValueError(f'Unknown permission {resource}:{action}')

    if rules.has_perm(rbac.permission_name(resource, action), user, obj):
        return PermissionCheck(allowed=True)

    return PermissionCheck(
        allowed=False,
        response=Response(
            {'detail': f'You do not have permission to {action} {resource.replace("_", " ")}.'},
            status=status.HTTP_403_FORBIDDEN,
        ),
    )


class FulfillmentPermission(drf_permissions.BasePermission):
    """
    DRF permission class backed by ``check_permission``.

    The view declares ``permission_resource`` and optionally
    ``permission_actions`` mapping viewset actions to ``view|edit|approve``.
    Unmapped safe methods need ``view``, everything else ``edit``.
    """

    message = 'You do not have permission to perform this action.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        resource = getattr(view, 'permission_resource', None)
        if resource is None:
            return False

        action_map = getattr(view, 'permission_actions', {})
        action = action_map.get(getattr(view, 'action', None))
        if action is None:
            action = 'view' if request.method in drf_permissions.SAFE_METHODS else 'edit'

        result = check_permission(request.user, resource, action)
        if not result.allowed:
            self.message = result.response.data['detail']
        return result.allowed
