"""Centralized role-based access control definitions using django-rules."""

from __future__ import annotations

import rules

from accounts.models import User, BusinessMembership, Business


FULFILLMENT_RESOURCES = ('stock_requests', 'delivery_notes', 'pick_lists')
FULFILLMENT_ACTIONS = ('view', 'edit', 'approve')


def _get_business_from_object(obj) -> Business | None:
    """Return the related business for a business-scoped object."""
    if obj is None:
        return None

    if isinstance(obj, Business):
        return obj

    business = getattr(obj, 'business', None)
    if isinstance(business, Business):
        return business

    return None


def _user_has_business_role(user: User, roles, business: Business | None = None) -> bool:
    if not user.is_authenticated:
        return False
    memberships = BusinessMembership.objects.filter(
        user=user,
        is_active=True,
        business__is_active=True,
        role__in=roles,
    )
    if business is not None:
        memberships = memberships.filter(business=business)
    return memberships.exists()


@rules.predicate
def is_superuser(user: User):
    return user.is_authenticated and user.is_superuser


@rules.predicate
def is_business_owner(user: User, obj=None):
    return _user_has_business_role(user, [BusinessMembership.OWNER], _get_business_from_object(obj))


@rules.predicate
def is_business_admin(user: User, obj=None):
    return _user_has_business_role(user, [BusinessMembership.ADMIN], _get_business_from_object(obj))


@rules.predicate
def is_business_manager(user: User, obj=None):
    return _user_has_business_role(user, [BusinessMembership.MANAGER], _get_business_from_object(obj))


@rules.predicate
def is_business_staff(user: User, obj=None):
    return _user_has_business_role(user, [BusinessMembership.STAFF], _get_business_from_object(obj))


@rules.predicate
def is_business_member(user: User, obj=None):
    return _user_has_business_role(
        user,
        [choice for choice, _ in BusinessMembership.ROLE_CHOICES],
        _get_business_from_object(obj),
    )


FULFILLMENT_VIEWERS = is_superuser | is_business_member
FULFILLMENT_EDITORS = is_superuser | is_business_owner | is_business_admin | is_business_manager | is_business_staff
FULFILLMENT_APPROVERS = is_superuser | is_business_owner | is_business_admin | is_business_manager

_PREDICATES_BY_ACTION = {
    'view': FULFILLMENT_VIEWERS,
    'edit': FULFILLMENT_EDITORS,
    'approve': FULFILLMENT_APPROVERS,
}


def permission_name(resource: str, action: str) -> str:
    return f'inventory.{action}_{resource}'


for _resource in FULFILLMENT_RESOURCES:
    for _action, _predicate in _PREDICATES_BY_ACTION.items():
        rules.add_perm(permission_name(_resource, _action), _predicate)
