"""
Delivery note assembly and lifecycle.

draft -> confirmed -> queued_for_picking -> picking_in_progress ->
dispatch_ready -> dispatched -> received, with void allowed up to
dispatch_ready. Dispatch and receipt live in ``inventory.dispatch_services``.
"""
import logging
from collections import defaultdict
from decimal import Decimal, InvalidOperation
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from inventory.fulfillment_exceptions import (
    FulfillmentNotFound,
    FulfillmentValidationError,
)
from inventory.fulfillment_states import (
    DELIVERY_NOTE_TRANSITIONS,
    DeliveryNoteStatus,
    StockRequestStatus,
)
from inventory.models import (
    DeliveryNote,
    DeliveryNoteItem,
    DeliveryNoteSource,
    PickList,
    StockRequest,
    StockRequestItem,
)
from inventory.pick_list_services import close_open_pick_lists
from inventory.service_base import ScopedService
from inventory.void_guard import ensure_voidable


logger = logging.getLogger(__name__)

ZERO = Decimal('0')


def _as_uuid(value, field, errors):
    try:
        return UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        errors.append(f"{field} '{value}' is not a valid id")
        return None


def _as_decimal(value):
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None


class DeliveryNoteAssembler(ScopedService):
    entity_label = 'delivery note'

    def queryset(self):
        return self.scope(DeliveryNote.objects.all()).select_related(
            'requesting_warehouse', 'fulfilling_warehouse', 'created_by'
        )

    def get(self, pk):
        return self.get_scoped(DeliveryNote.objects.all(), pk)

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def _lock_sources(self, stock_request_ids):
        stock_requests = list(
            self.scope(StockRequest.objects.alive())
            .select_for_update()
            .filter(pk__in=stock_request_ids)
            .order_by('pk')
        )
        found = {sr.pk for sr in stock_requests}
        missing = [str(pk) for pk in stock_request_ids if pk not in found]
        if missing:
            raise FulfillmentNotFound(f"Stock request(s) not found: {', '.join(sorted(missing))}")

        errors = []
        for stock_request in stock_requests:
            if stock_request.status != StockRequestStatus.APPROVED:
                errors.append(
                    f"Stock request {stock_request.request_code} is {stock_request.status}; only approved requests can be delivered"
                )
        pairs = {(sr.requesting_warehouse_id, sr.fulfilling_warehouse_id) for sr in stock_requests}
        if len(pairs) > 1:
            errors.append('All source stock requests must share the same requesting and fulfilling warehouses')
        if errors:
            raise FulfillmentValidationError({'stock_request_ids': errors})
        return stock_requests

    def create(self, *, items, stock_request_ids=None, notes=''):
        """
        Build a draft delivery note from caller-specified allocations.

        Each line names a stock request item and the quantity allocated from
        it. The source set is the union of ``stock_request_ids`` and the
        requests the lines belong to.
        """
        if not items:
            raise FulfillmentValidationError({'items': 'At least one item is required.'})

        errors = []
        source_ids = set()
        for raw_id in stock_request_ids or []:
            parsed = _as_uuid(raw_id, 'stock_request_id', errors)
            if parsed:
                source_ids.add(parsed)

        item_ids = []
        for line in items:
            item_id = _as_uuid(line.get('stock_request_item_id'), 'stock_request_item_id', errors)
            item_ids.append(item_id)
            if line.get('stock_request_id'):
                parsed = _as_uuid(line['stock_request_id'], 'stock_request_id', errors)
                if parsed:
                    source_ids.add(parsed)
        if errors:
            raise FulfillmentValidationError({'items': errors})

        request_items = {
            item.pk: item
            for item in StockRequestItem.objects.filter(
                pk__in=[pk for pk in item_ids if pk],
                stock_request__business_id=self.context.company_id,
            ).select_related('product', 'stock_request')
        }
        for item in request_items.values():
            source_ids.add(item.stock_request_id)

        with transaction.atomic():
            stock_requests = self._lock_sources(source_ids)
            stock_requests_by_id = {sr.pk: sr for sr in stock_requests}
            lines = self._validate_lines(items, item_ids, request_items, stock_requests_by_id)

            first = stock_requests[0]
            delivery_note = DeliveryNote.objects.create(
                business_id=self.context.company_id,
                business_unit_id=self.context.business_unit_id or first.business_unit_id,
                requesting_warehouse_id=first.requesting_warehouse_id,
                fulfilling_warehouse_id=first.fulfilling_warehouse_id,
                notes=notes or '',
                created_by=self.user,
                updated_by=self.user,
            )
            for stock_request in stock_requests:
                DeliveryNoteSource.objects.create(
                    delivery_note=delivery_note,
                    stock_request=stock_request,
                    business_id=self.context.company_id,
                )
            for request_item, quantity in lines:
                DeliveryNoteItem.objects.create(
                    delivery_note=delivery_note,
                    stock_request_id=request_item.stock_request_id,
                    stock_request_item=request_item,
                    product_id=request_item.product_id,
                    uom_id=request_item.uom_id,
                    allocated_qty=quantity,
                )
            self.audit(
                'CREATE', delivery_note,
                dn_no=delivery_note.dn_no,
                sources=','.join(sr.request_code for sr in stock_requests),
            )

        logger.info(
            f"Delivery note {delivery_note.dn_no} created from {len(stock_requests)} stock request(s)"
        )
        return delivery_note

    def _validate_lines(self, items, item_ids, request_items, stock_requests_by_id):
        errors = []
        lines = []
        allocating = defaultdict(lambda: ZERO)

        for index, (line, item_id) in enumerate(zip(items, item_ids)):
            label = f"Item {index + 1}"
            request_item = request_items.get(item_id)
            if request_item is None:
                errors.append(f"{label}: stock request item not found")
                continue
            if request_item.stock_request_id not in stock_requests_by_id:
                errors.append(f"{label}: stock request is not among the sources")
                continue
            if line.get('stock_request_id') and str(line['stock_request_id']) != str(request_item.stock_request_id):
                errors.append(f"{label}: item does not belong to stock request {line['stock_request_id']}")
                continue
            if line.get('product_id') and str(line['product_id']) != str(request_item.product_id):
                errors.append(f"{label}: product does not match the stock request item")
                continue
            if line.get('uom_id') and str(line['uom_id']) != str(request_item.uom_id):
                errors.append(f"{label}: unit of measure does not match the stock request item")
                continue

            quantity = _as_decimal(line.get('allocated_qty'))
            if quantity is None or quantity <= 0:
                errors.append(f"{label}: allocated quantity must be greater than zero")
                continue

            allocating[request_item.pk] += quantity
            remaining = request_item.remaining_allocatable
            if allocating[request_item.pk] > remaining:
                errors.append(
                    f"{label}: '{request_item.product.name}' allocation {allocating[request_item.pk]} "
                    f"exceeds remaining {remaining}"
                )
                continue
            lines.append((request_item, quantity))

        if errors:
            raise FulfillmentValidationError({'items': errors})
        return lines

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _locked(self, pk):
        return self.lock(DeliveryNote.objects.all(), pk)

    def _move(self, delivery_note, target, attempted, sources=None, extra_fields=()):
        previous = self.ensure_transition(
            DELIVERY_NOTE_TRANSITIONS, delivery_note, target, attempted, sources=sources
        )
        delivery_note.status = target
        delivery_note.updated_by = self.user
        delivery_note.save(update_fields=['status', 'updated_by', 'updated_at', *extra_fields])
        self.audit('TRANSITION', delivery_note, from_status=previous, to_status=target)
        logger.info(f"Delivery note {delivery_note.dn_no}: {previous} -> {target}")
        return delivery_note

    def confirm(self, pk):
        with transaction.atomic():
            delivery_note = self._locked(pk)
            delivery_note.confirmed_at = timezone.now()
            delivery_note.confirmed_by = self.user
            return self._move(
                delivery_note, DeliveryNoteStatus.CONFIRMED, 'confirm',
                sources={DeliveryNoteStatus.DRAFT},
                extra_fields=('confirmed_at', 'confirmed_by'),
            )

    def queue_picking(self, pk):
        """Mark a confirmed note as waiting for a picker. Only valid before any pick list exists."""
        with transaction.atomic():
            delivery_note = self._locked(pk)
            if PickList.objects.alive().filter(delivery_note=delivery_note).exists():
                raise FulfillmentValidationError({
                    'detail': 'This delivery note already has a pick list. Use the pick-list API to manage picking.',
                    'code': 'use_pick_list_api',
                })
            return self._move(
                delivery_note, DeliveryNoteStatus.QUEUED_FOR_PICKING, 'queue',
                sources={DeliveryNoteStatus.CONFIRMED},
            )

    def mark_dispatch_ready(self, pk, items=None):
        """
        Finalize picking.

        Listed lines take the supplied picked quantity clamped to
        ``[0, allocated_qty]``; unlisted lines keep their recorded progress.
        Short quantities are derived and open pick lists are closed.
        """
        with transaction.atomic():
            delivery_note = self._locked(pk)
            self.ensure_transition(
                DELIVERY_NOTE_TRANSITIONS, delivery_note, DeliveryNoteStatus.DISPATCH_READY, 'mark dispatch ready',
                sources={DeliveryNoteStatus.PICKING_IN_PROGRESS},
            )

            dn_items = {item.pk: item for item in delivery_note.items.select_for_update().order_by('pk')}
            supplied = {}
            errors = []
            for line in items or []:
                item_id = _as_uuid(line.get('delivery_note_item_id'), 'delivery_note_item_id', errors)
                if item_id is None:
                    continue
                if item_id not in dn_items:
                    errors.append(f"Delivery note item {item_id} does not belong to {delivery_note.dn_no}")
                    continue
                quantity = _as_decimal(line.get('picked_qty'))
                if quantity is None:
                    errors.append(f"Delivery note item {item_id}: picked quantity is not a number")
                    continue
                supplied[item_id] = quantity
            if errors:
                raise FulfillmentValidationError({'items': errors})

            for item_id, dn_item in dn_items.items():
                dn_item.finalize_picking(supplied.get(item_id, dn_item.picked_qty))
                dn_item.save(update_fields=['picked_qty', 'short_qty', 'updated_at'])

            close_open_pick_lists(delivery_note, finish=True, picked=dn_items)

            delivery_note.picking_completed_at = timezone.now()
            delivery_note.picking_completed_by = self.user
            return self._move(
                delivery_note, DeliveryNoteStatus.DISPATCH_READY, 'mark dispatch ready',
                sources={DeliveryNoteStatus.PICKING_IN_PROGRESS},
                extra_fields=('picking_completed_at', 'picking_completed_by'),
            )

    def void(self, pk, reason):
        if not (reason or '').strip():
            raise FulfillmentValidationError({'reason': 'A void reason is required.'})
        with transaction.atomic():
            delivery_note = self._locked(pk)
            return self.void_locked(delivery_note, reason.strip())

    def void_locked(self, delivery_note, reason):
        """Void a delivery note already locked by the caller's transaction."""
        ensure_voidable(delivery_note)
        previous = delivery_note.status
        now = timezone.now()

        close_open_pick_lists(delivery_note, finish=False)

        delivery_note.status = DeliveryNoteStatus.VOIDED
        delivery_note.voided_at = now
        delivery_note.voided_by = self.user
        delivery_note.void_reason = reason
        delivery_note.append_note(f"Voided: {reason}", self.user)
        delivery_note.updated_by = self.user
        delivery_note.save(update_fields=[
            'status', 'voided_at', 'voided_by', 'void_reason', 'notes', 'updated_by', 'updated_at',
        ])
        self.audit('VOID', delivery_note, from_status=previous, to_status=DeliveryNoteStatus.VOIDED, reason=reason)
        logger.info(f"Delivery note {delivery_note.dn_no} voided from {previous}")
        return delivery_note
