"""Shared plumbing for tenant-scoped fulfillment services."""
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Q

from accounts.business_context import RequestContext
from accounts.models import AuditLog
from inventory.fulfillment_exceptions import FulfillmentNotFound, InvalidTransition
from inventory.fulfillment_states import can_transition


logger = logging.getLogger(__name__)


class ScopedService:
    """
    Base class for services bound to one request context.

    Every queryset goes through ``scope`` so rows of another company (or of
    another business unit, when the caller selected one) behave as missing.
    """

    entity_label = 'record'

    def __init__(self, context: RequestContext):
        self.context = context

    @property
    def user(self):
        return self.context.user

    def scope(self, queryset, *, business_unit_field='business_unit'):
        queryset = queryset.filter(business_id=self.context.company_id)
        if self.context.business_unit_id and business_unit_field:
            queryset = queryset.filter(
                Q(**{f'{business_unit_field}_id': self.context.business_unit_id})
                | Q(**{f'{business_unit_field}__isnull': True})
            )
        return queryset

    def get_scoped(self, queryset, pk, label=None):
        try:
            return self.scope(queryset).get(pk=pk)
        except (queryset.model.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise FulfillmentNotFound(f'{(label or self.entity_label).capitalize()} not found.')

    def lock(self, queryset, pk, label=None):
        """Re-read a row inside the current transaction with a row lock."""
        return self.get_scoped(queryset.select_for_update(), pk, label)

    def ensure_transition(self, table, instance, target, attempted, sources=None):
        current = instance.status
        allowed = can_transition(table, current, target)
        if sources is not None:
            allowed = allowed and current in sources
        if not allowed:
            logger.info(
                f"Rejected {attempted} on {self.entity_label} {instance.pk}: status is {current}"
            )
            raise InvalidTransition(self.entity_label, current, attempted)
        return current

    def audit(self, action, instance, **changes):
        return AuditLog.record(context=self.context, action=action, instance=instance, **changes)
