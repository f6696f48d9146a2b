"""
Business Context Management
Resolves the tenant scope of a request once, so every fulfillment operation
receives an explicit company / business-unit / user triple.
"""

from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

from rest_framework.exceptions import NotAuthenticated, PermissionDenied, ValidationError

from accounts.models import BusinessUnit


BUSINESS_UNIT_HEADER = 'HTTP_X_BUSINESS_UNIT'


@dataclass(frozen=True)
class RequestContext:
    """Tenant scope threaded through every service call."""
    company_id: UUID
    business_unit_id: Optional[UUID]
    user_id: UUID
    user: Any = None


class BusinessContextManager:
    """
    Builds a RequestContext for the authenticated user.

    Business unit priority:
    1. ``X-Business-Unit`` header
    2. ``business_unit`` query parameter
    3. Membership default business unit
    """

    @staticmethod
    def get_membership(user):
        if not user or not user.is_authenticated:
            raise NotAuthenticated('Authentication credentials were not provided.')

        membership = user.primary_membership
        if membership is None:
            raise PermissionDenied('You are not an active member of any business.')
        return membership

    @staticmethod
    def _requested_business_unit_id(request):
        raw = request.META.get(BUSINESS_UNIT_HEADER)
        if not raw:
            raw = request.GET.get('business_unit')
        if not raw:
            return None
        try:
            return UUID(str(raw))
        except (ValueError, TypeError):
            raise ValidationError({'business_unit': 'Invalid business unit ID format'})

    @classmethod
    def resolve(cls, request) -> RequestContext:
        user = request.user
        membership = cls.get_membership(user)
        business_id = membership.business_id

        business_unit_id = cls._requested_business_unit_id(request)
        if business_unit_id is not None:
            belongs = BusinessUnit.objects.filter(
                id=business_unit_id,
                business_id=business_id,
                is_active=True,
            ).exists()
            if not belongs:
                raise PermissionDenied(f'You do not have access to business unit {business_unit_id}')
        else:
            business_unit_id = membership.default_business_unit_id

        return RequestContext(
            company_id=business_id,
            business_unit_id=business_unit_id,
            user_id=user.id,
            user=user,
        )


def resolve_request_context(request) -> RequestContext:
    """Resolve and memoize the context on the request object."""
    context = getattr(request, '_fulfillment_context', None)
    if context is None:
        context = BusinessContextManager.resolve(request)
        request._fulfillment_context = context
    return context
