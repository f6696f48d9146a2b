"""
Dispatch and receipt of delivery notes.

Both operations resolve a quantity per line (the outstanding remainder unless
the caller listed the line explicitly) and hand the non-zero lines to the
inventory posting boundary. A posting failure rolls back the whole call.
"""
import logging
from decimal import Decimal, InvalidOperation
from uuid import UUID

from django.db import transaction

from inventory.fulfillment_exceptions import (
    FulfillmentValidationError,
    InvalidTransition,
    PostingFailure,
)
from inventory.fulfillment_states import DeliveryNoteStatus
from inventory.inventory_posting import (
    DispatchLine,
    InventoryPostingService,
    ReceiptLine,
)
from inventory.models import DeliveryNote, StorageLocation
from inventory.quantity_selection import Explicit, build_selections, selection_for
from inventory.service_base import ScopedService


logger = logging.getLogger(__name__)

ZERO = Decimal('0')

# A received note can ship again while picked quantity is still undispatched.
DISPATCHABLE_STATUSES = frozenset({
    DeliveryNoteStatus.DISPATCH_READY,
    DeliveryNoteStatus.DISPATCHED,
    DeliveryNoteStatus.RECEIVED,
})
RECEIVABLE_STATUSES = frozenset({DeliveryNoteStatus.DISPATCHED, DeliveryNoteStatus.RECEIVED})


class _LineResolver(ScopedService):
    entity_label = 'delivery note'

    def __init__(self, context, posting_service=None):
        super().__init__(context)
        self.posting_service = posting_service or InventoryPostingService()

    def _selections(self, delivery_note, items, quantity_key):
        try:
            selections = build_selections(items, quantity_key)
        except (KeyError, ValueError, TypeError, InvalidOperation):
            raise FulfillmentValidationError({
                'items': f'Each item needs a valid delivery_note_item_id and {quantity_key}.'
            })
        known = {item.pk for item in delivery_note.items.all()}
        unknown = [str(pk) for pk in selections if pk not in known]
        if unknown:
            raise FulfillmentValidationError({
                'items': [f"Delivery note item {pk} does not belong to {delivery_note.dn_no}" for pk in unknown]
            })
        return selections

    def _resolve(self, delivery_note, selections, outstanding_of, verb):
        """Return ``[(item, quantity, selection)]`` for lines with a non-zero quantity."""
        errors = []
        resolved = []
        for item in delivery_note.items.select_related('product').order_by('created_at', 'pk'):
            selection = selection_for(selections, item.pk)
            outstanding = outstanding_of(item)
            quantity = selection.resolve(outstanding)
            if isinstance(selection, Explicit):
                if quantity < 0:
                    errors.append(f"'{item.product.name}': {verb} quantity cannot be negative")
                    continue
                if quantity > outstanding:
                    errors.append(
                        f"'{item.product.name}': {verb} quantity {quantity} exceeds outstanding {outstanding}"
                    )
                    continue
            if quantity > 0:
                resolved.append((item, quantity, selection))
        if errors:
            raise FulfillmentValidationError({'items': errors})
        return resolved


class DispatchPoster(_LineResolver):

    def dispatch(self, pk, *, driver_name='', driver_signature='', dispatch_date=None, notes='', items=None):
        with transaction.atomic():
            delivery_note = self.lock(DeliveryNote.objects.all(), pk)
            if delivery_note.status not in DISPATCHABLE_STATUSES:
                raise InvalidTransition(self.entity_label, delivery_note.status, 'dispatch')
            previous = delivery_note.status

            selections = self._selections(delivery_note, items, 'dispatch_qty')
            resolved = self._resolve(delivery_note, selections, lambda item: item.undispatched_qty, 'dispatch')
            if not resolved:
                raise FulfillmentValidationError({
                    'detail': f'Nothing left to dispatch on {delivery_note.dn_no}.',
                    'code': 'nothing_to_dispatch',
                })

            result = self.posting_service.post_dispatch(
                company_id=self.context.company_id,
                user_id=self.context.user_id,
                dn_id=delivery_note.pk,
                business_unit_id=delivery_note.business_unit_id or self.context.business_unit_id,
                dispatch_date=dispatch_date,
                notes=notes,
                driver_info={'driver_name': driver_name, 'driver_signature': driver_signature},
                lines=[DispatchLine(item.pk, quantity) for item, quantity, _ in resolved],
            )
            if not result.ok:
                raise PostingFailure(result.error)

            delivery_note.refresh_from_db()
            total = sum((quantity for _, quantity, _ in resolved), ZERO)
            self.audit(
                'DISPATCH', delivery_note,
                from_status=previous, to_status=delivery_note.status, quantity=total, lines=len(resolved),
            )

        logger.info(f"Delivery note {delivery_note.dn_no} dispatched {total} across {len(resolved)} line(s)")
        return delivery_note


class ReceiptRecorder(_LineResolver):

    def _validate_locations(self, delivery_note, selections):
        location_ids = set()
        for selection in selections.values():
            if selection.location_id:
                try:
                    location_ids.add(UUID(str(selection.location_id)))
                except (TypeError, ValueError):
                    raise FulfillmentValidationError({'items': f"Location '{selection.location_id}' is not a valid id"})
        if not location_ids:
            return
        valid = set(
            StorageLocation.objects.filter(
                pk__in=location_ids,
                warehouse_id=delivery_note.requesting_warehouse_id,
                is_active=True,
            ).values_list('pk', flat=True)
        )
        invalid = sorted(str(pk) for pk in location_ids - valid)
        if invalid:
            raise FulfillmentValidationError({
                'items': [f"Location {pk} does not belong to the receiving warehouse" for pk in invalid]
            })

    def receive(self, pk, *, received_date=None, notes='', items=None):
        with transaction.atomic():
            delivery_note = self.lock(DeliveryNote.objects.all(), pk)
            if delivery_note.status not in RECEIVABLE_STATUSES:
                raise InvalidTransition(self.entity_label, delivery_note.status, 'receive')
            previous = delivery_note.status

            selections = self._selections(delivery_note, items, 'received_qty')
            self._validate_locations(delivery_note, selections)
            resolved = self._resolve(
                delivery_note, selections, lambda item: item.outstanding_receipt_qty, 'receipt'
            )
            if not resolved:
                raise FulfillmentValidationError({
                    'detail': f'Nothing outstanding to receive on {delivery_note.dn_no}.',
                    'code': 'nothing_to_receive',
                })

            result = self.posting_service.post_receipt(
                company_id=self.context.company_id,
                user_id=self.context.user_id,
                dn_id=delivery_note.pk,
                business_unit_id=delivery_note.business_unit_id or self.context.business_unit_id,
                received_date=received_date,
                notes=notes,
                lines=[
                    ReceiptLine(item.pk, quantity, getattr(selection, 'location_id', None))
                    for item, quantity, selection in resolved
                ],
            )
            if not result.ok:
                raise PostingFailure(result.error)

            delivery_note.refresh_from_db()
            total = sum((quantity for _, quantity, _ in resolved), ZERO)
            self.audit(
                'RECEIPT', delivery_note,
                from_status=previous, to_status=delivery_note.status, quantity=total, lines=len(resolved),
            )

        logger.info(
            f"Delivery note {delivery_note.dn_no} received {total} across {len(resolved)} line(s); "
            f"status {delivery_note.status}"
        )
        return delivery_note
