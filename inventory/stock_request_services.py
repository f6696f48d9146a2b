"""
Stock request lifecycle.

draft -> submitted -> approved -> completed, with cancellation allowed from any
non-terminal status and rejection allowed from submitted.
"""
import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from inventory.delivery_note_services import DeliveryNoteAssembler
from inventory.fulfillment_exceptions import FulfillmentValidationError, InvalidTransition
from inventory.fulfillment_states import (
    STOCK_REQUEST_TRANSITIONS,
    DeliveryNoteStatus,
    StockRequestPriority,
    StockRequestStatus,
)
from inventory.models import (
    DeliveryNote,
    Product,
    StockRequest,
    StockRequestItem,
    UnitOfMeasure,
    Warehouse,
)
from inventory.service_base import ScopedService
from inventory.void_guard import can_void, ensure_cancellable


logger = logging.getLogger(__name__)


class StockRequestManager(ScopedService):
    entity_label = 'stock request'

    def queryset(self):
        return self.scope(StockRequest.objects.alive()).select_related(
            'requesting_warehouse', 'fulfilling_warehouse', 'created_by'
        )

    def get(self, pk):
        return self.get_scoped(StockRequest.objects.alive(), pk)

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _warehouse(self, warehouse_id, field):
        warehouse = Warehouse.objects.filter(
            pk=warehouse_id,
            business_id=self.context.company_id,
            is_active=True,
        ).first() if warehouse_id else None
        if warehouse is None:
            raise FulfillmentValidationError({field: 'Warehouse not found in this business.'})
        return warehouse

    def _warehouse_pair(self, requesting_warehouse_id, fulfilling_warehouse_id):
        requesting = self._warehouse(requesting_warehouse_id, 'requesting_warehouse')
        fulfilling = self._warehouse(fulfilling_warehouse_id, 'fulfilling_warehouse')
        if requesting.pk == fulfilling.pk:
            raise FulfillmentValidationError({
                'fulfilling_warehouse': 'Requesting and fulfilling warehouses must be different.'
            })
        return requesting, fulfilling

    def _validate_items(self, items):
        if not items:
            raise FulfillmentValidationError({'items': 'At least one item is required.'})

        products = {
            str(product.pk): product
            for product in Product.objects.filter(
                business_id=self.context.company_id,
                pk__in=[item.get('product_id') for item in items if item.get('product_id')],
            ).select_related('default_uom')
        }
        units = {
            str(uom.pk): uom
            for uom in UnitOfMeasure.objects.filter(
                business_id=self.context.company_id,
                pk__in=[item.get('uom_id') for item in items if item.get('uom_id')],
            )
        }

        errors = []
        lines = []
        seen = set()
        for index, item in enumerate(items):
            product = products.get(str(item.get('product_id')))
            if product is None or not product.is_active:
                errors.append(f"Item {index + 1}: product not found in this business")
                continue
            if product.pk in seen:
                errors.append(f"Item {index + 1}: product '{product.name}' is listed more than once")
                continue
            seen.add(product.pk)

            try:
                quantity = Decimal(str(item.get('requested_qty')))
            except (InvalidOperation, TypeError, ValueError):
                errors.append(f"Item {index + 1}: requested quantity is not a number")
                continue
            if quantity <= 0:
                errors.append(f"Item {index + 1}: requested quantity must be greater than zero")
                continue

            uom = product.default_uom
            if item.get('uom_id'):
                uom = units.get(str(item['uom_id']))
                if uom is None:
                    errors.append(f"Item {index + 1}: unit of measure not found in this business")
                    continue

            lines.append({
                'product': product,
                'uom': uom,
                'requested_qty': quantity,
                'unit_price': item.get('unit_price'),
                'notes': item.get('notes'),
            })

        if errors:
            raise FulfillmentValidationError({'items': errors})
        return lines

    def _create_items(self, stock_request, lines):
        for line in lines:
            StockRequestItem.objects.create(stock_request=stock_request, **line)

    # ------------------------------------------------------------------
    # Draft editing
    # ------------------------------------------------------------------

    def create(self, *, requesting_warehouse_id, fulfilling_warehouse_id, items,
               priority=StockRequestPriority.NORMAL, required_by=None, notes=''):
        requesting, fulfilling = self._warehouse_pair(requesting_warehouse_id, fulfilling_warehouse_id)
        lines = self._validate_items(items)

        with transaction.atomic():
            stock_request = StockRequest.objects.create(
                business_id=self.context.company_id,
                business_unit_id=self.context.business_unit_id,
                requesting_warehouse=requesting,
                fulfilling_warehouse=fulfilling,
                priority=priority or StockRequestPriority.NORMAL,
                required_by=required_by,
                notes=notes or '',
                created_by=self.user,
                updated_by=self.user,
            )
            self._create_items(stock_request, lines)
            self.audit('CREATE', stock_request, request_code=stock_request.request_code, items=len(lines))

        logger.info(f"Stock request {stock_request.request_code} created with {len(lines)} item(s)")
        return stock_request

    def update_draft(self, pk, fields, items=None):
        """Edit header fields and optionally replace every line. Drafts only."""
        with transaction.atomic():
            stock_request = self.lock(StockRequest.objects.alive(), pk)
            if stock_request.status != StockRequestStatus.DRAFT:
                raise self._invalid(stock_request, 'edit')

            requesting_id = fields.get('requesting_warehouse_id', stock_request.requesting_warehouse_id)
            fulfilling_id = fields.get('fulfilling_warehouse_id', stock_request.fulfilling_warehouse_id)
            requesting, fulfilling = self._warehouse_pair(requesting_id, fulfilling_id)
            stock_request.requesting_warehouse = requesting
            stock_request.fulfilling_warehouse = fulfilling
            if fields.get('priority'):
                stock_request.priority = fields['priority']
            if 'notes' in fields:
                stock_request.notes = fields['notes'] or ''
            if 'required_by' in fields:
                stock_request.required_by = fields['required_by']

            if items is not None:
                lines = self._validate_items(items)
                stock_request.items.all().delete()
                self._create_items(stock_request, lines)

            stock_request.updated_by = self.user
            stock_request.save()
            self.audit('UPDATE', stock_request, replaced_items=items is not None)

        return stock_request

    def delete_draft(self, pk):
        with transaction.atomic():
            stock_request = self.lock(StockRequest.objects.alive(), pk)
            if stock_request.status != StockRequestStatus.DRAFT:
                raise self._invalid(stock_request, 'delete')
            stock_request.deleted_at = timezone.now()
            stock_request.updated_by = self.user
            stock_request.save(update_fields=['deleted_at', 'updated_by', 'updated_at'])
            self.audit('DELETE', stock_request, request_code=stock_request.request_code)

        logger.info(f"Stock request {stock_request.request_code} deleted")

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    def _invalid(self, stock_request, attempted):
        return InvalidTransition(self.entity_label, stock_request.status, attempted)

    def _move(self, stock_request, target, attempted, sources, stamp=None):
        previous = self.ensure_transition(
            STOCK_REQUEST_TRANSITIONS, stock_request, target, attempted, sources=sources
        )
        now = timezone.now()
        update_fields = ['status', 'notes', 'updated_by', 'updated_at']
        stock_request.status = target
        stock_request.updated_by = self.user
        if stamp:
            setattr(stock_request, f'{stamp}_at', now)
            setattr(stock_request, f'{stamp}_by', self.user)
            update_fields.extend([f'{stamp}_at', f'{stamp}_by'])
        stock_request.save(update_fields=update_fields)
        self.audit('TRANSITION', stock_request, from_status=previous, to_status=target)
        logger.info(f"Stock request {stock_request.request_code}: {previous} -> {target}")
        return stock_request

    def submit(self, pk):
        with transaction.atomic():
            stock_request = self.lock(StockRequest.objects.alive(), pk)
            if not stock_request.items.exists():
                raise FulfillmentValidationError({'items': 'Cannot submit a request without items.'})
            return self._move(
                stock_request, StockRequestStatus.SUBMITTED, 'submit',
                sources={StockRequestStatus.DRAFT}, stamp='submitted',
            )

    def approve(self, pk):
        with transaction.atomic():
            stock_request = self.lock(StockRequest.objects.alive(), pk)
            return self._move(
                stock_request, StockRequestStatus.APPROVED, 'approve',
                sources={StockRequestStatus.SUBMITTED}, stamp='approved',
            )

    def reject(self, pk, reason):
        if not (reason or '').strip():
            raise FulfillmentValidationError({'reason': 'A rejection reason is required.'})
        with transaction.atomic():
            stock_request = self.lock(StockRequest.objects.alive(), pk)
            self.ensure_transition(
                STOCK_REQUEST_TRANSITIONS, stock_request, StockRequestStatus.CANCELLED, 'reject',
                sources={StockRequestStatus.SUBMITTED},
            )
            stock_request.append_note(f"Rejected: {reason.strip()}", self.user)
            return self._move(
                stock_request, StockRequestStatus.CANCELLED, 'reject',
                sources={StockRequestStatus.SUBMITTED}, stamp='cancelled',
            )

    def cancel(self, pk, reason):
        """
        Cancel a request that is not yet completed or cancelled.

        Returns ``(stock_request, warnings)``. When the request was approved,
        delivery notes sourced only from it are voided while still voidable;
        the rest are left alone and reported as warnings.
        """
        if not (reason or '').strip():
            raise FulfillmentValidationError({'reason': 'A cancellation reason is required.'})
        reason = reason.strip()
        warnings = []

        with transaction.atomic():
            stock_request = self.lock(StockRequest.objects.alive(), pk)
            ensure_cancellable(stock_request)
            was_approved = stock_request.status == StockRequestStatus.APPROVED

            stock_request.append_note(f"Cancelled: {reason}", self.user)
            self._move(
                stock_request, StockRequestStatus.CANCELLED, 'cancel',
                sources=None, stamp='cancelled',
            )

            if was_approved:
                warnings = self._void_sourced_delivery_notes(stock_request, reason)

        for warning in warnings:
            logger.warning(f"Stock request {stock_request.request_code} cancel: {warning}")
        return stock_request, warnings

    def _void_sourced_delivery_notes(self, stock_request, reason):
        warnings = []
        assembler = DeliveryNoteAssembler(self.context)
        delivery_notes = (
            DeliveryNote.objects.select_for_update()
            .filter(business_id=self.context.company_id, sources__stock_request=stock_request)
            .exclude(status=DeliveryNoteStatus.VOIDED)
            .order_by('pk')
        )
        for delivery_note in delivery_notes:
            shared = delivery_note.sources.exclude(stock_request=stock_request).exists()
            if shared:
                warnings.append(
                    f"Delivery note {delivery_note.dn_no} also fulfils other stock requests and was not voided."
                )
            elif not can_void(delivery_note.status):
                warnings.append(
                    f"Delivery note {delivery_note.dn_no} is {delivery_note.status} and can no longer be voided."
                )
            else:
                assembler.void_locked(delivery_note, f"Stock request {stock_request.request_code} cancelled: {reason}")
        return warnings

    def complete(self, pk):
        with transaction.atomic():
            stock_request = self.lock(StockRequest.objects.alive(), pk)
            self.ensure_transition(
                STOCK_REQUEST_TRANSITIONS, stock_request, StockRequestStatus.COMPLETED, 'complete',
                sources={StockRequestStatus.APPROVED},
            )
            outstanding = outstanding_items(stock_request)
            if outstanding:
                raise FulfillmentValidationError({
                    'items': [
                        f"'{item.product.name}': received {item.received_qty} of {item.requested_qty}"
                        for item in outstanding
                    ]
                })
            return self._move(
                stock_request, StockRequestStatus.COMPLETED, 'complete',
                sources={StockRequestStatus.APPROVED}, stamp='completed',
            )


def outstanding_items(stock_request):
    """Items whose received rollup is still below the requested quantity."""
    items = stock_request.items.with_rollups().select_related('product')
    return [item for item in items if item.received_qty < item.requested_qty]
