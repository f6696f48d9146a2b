"""
Inventory posting boundary.

``post_dispatch`` and ``post_receipt`` apply every stock change of one
shipment movement together with the delivery note quantities and status in a
single transaction. A rejected posting leaves nothing behind and is reported
through ``PostingResult`` instead of an exception.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from inventory.fulfillment_states import DeliveryNoteStatus
from inventory.models import (
    DeliveryNote,
    LocationStock,
    StockMovement,
    StorageLocation,
    WarehouseStock,
)


logger = logging.getLogger(__name__)

ZERO = Decimal('0')


@dataclass(frozen=True)
class DispatchLine:
    delivery_note_item_id: UUID
    quantity: Decimal


@dataclass(frozen=True)
class ReceiptLine:
    delivery_note_item_id: UUID
    quantity: Decimal
    location_id: Optional[UUID] = None


@dataclass
class PostingResult:
    ok: bool
    error: Optional[str] = None
    movements: List[StockMovement] = field(default_factory=list)


class PostingRejected(Exception):
    """Internal signal used to roll back the posting savepoint."""

    def __init__(self, errors):
        self.errors = errors
        super().__init__('; '.join(errors))


class InventoryPostingService:
    """Applies dispatch and receipt postings against warehouse balances."""

    def _lock_delivery_note(self, company_id, dn_id):
        return (
            DeliveryNote.objects.select_for_update()
            .select_related('fulfilling_warehouse', 'requesting_warehouse')
            .get(pk=dn_id, business_id=company_id)
        )

    def _lock_items(self, delivery_note, item_ids):
        items = delivery_note.items.select_for_update().filter(pk__in=item_ids).select_related('product')
        found = {item.pk: item for item in items}
        missing = [str(pk) for pk in item_ids if pk not in found]
        if missing:
            raise PostingRejected([f"Delivery note item {pk} not found on {delivery_note.dn_no}" for pk in missing])
        return found

    def _lock_balances(self, model, product_ids, **lookup):
        """Lock balance rows in product id order, creating missing ones at zero."""
        balances = {}
        for product_id in sorted(product_ids, key=str):
            balance, _ = model.objects.select_for_update().get_or_create(
                product_id=product_id,
                defaults={'quantity': ZERO, **lookup.get('defaults', {})},
                **lookup['filters'],
            )
            balances[product_id] = balance
        return balances

    def post_dispatch(self, *, company_id, user_id, dn_id, business_unit_id, dispatch_date,
                      notes, driver_info, lines: List[DispatchLine]) -> PostingResult:
        try:
            with transaction.atomic():
                delivery_note = self._lock_delivery_note(company_id, dn_id)
                items = self._lock_items(delivery_note, [line.delivery_note_item_id for line in lines])
                warehouse = delivery_note.fulfilling_warehouse
                balances = self._lock_balances(
                    WarehouseStock,
                    {items[line.delivery_note_item_id].product_id for line in lines},
                    filters={'warehouse': warehouse},
                    defaults={'business_id': company_id},
                )

                errors = []
                ledger = []
                for line in lines:
                    item = items[line.delivery_note_item_id]
                    if line.quantity > item.undispatched_qty:
                        errors.append(
                            f"'{item.product.name}': dispatch {line.quantity} exceeds undispatched {item.undispatched_qty}"
                        )
                    balance = balances[item.product_id]
                    if balance.quantity - line.quantity < 0:
                        errors.append(
                            f"'{item.product.name}': insufficient stock in {warehouse.name}. "
                            f"Available: {balance.quantity}, Required: {line.quantity}"
                        )
                    qty_before = balance.quantity
                    balance.quantity -= line.quantity
                    ledger.append((line, item, qty_before, balance.quantity))
                if errors:
                    raise PostingRejected(errors)

                movements = []
                for line, item, qty_before, qty_after in ledger:
                    movements.append(StockMovement.objects.create(
                        business_id=company_id,
                        business_unit_id=business_unit_id,
                        warehouse=warehouse,
                        product_id=item.product_id,
                        uom_id=item.uom_id,
                        movement_type=StockMovement.TYPE_DISPATCH,
                        quantity=-line.quantity,
                        qty_before=qty_before,
                        qty_after=qty_after,
                        reference_type='delivery_note',
                        reference_id=delivery_note.pk,
                        reference_number=delivery_note.dn_no,
                        notes=notes or None,
                        created_by_id=user_id,
                    ))
                    item.dispatched_qty += line.quantity
                    item.save(update_fields=['dispatched_qty', 'updated_at'])

                for balance in balances.values():
                    balance.save(update_fields=['quantity', 'updated_at'])

                if delivery_note.status == DeliveryNoteStatus.RECEIVED:
                    delivery_note.received_at = None
                    delivery_note.received_by_id = None
                delivery_note.status = DeliveryNoteStatus.DISPATCHED
                delivery_note.dispatched_at = timezone.now()
                delivery_note.dispatched_by_id = user_id
                delivery_note.dispatch_date = dispatch_date or timezone.localdate()
                if driver_info.get('driver_name'):
                    delivery_note.driver_name = driver_info['driver_name']
                if driver_info.get('driver_signature'):
                    delivery_note.driver_signature = driver_info['driver_signature']
                if notes:
                    delivery_note.notes = f"{delivery_note.notes}\n\n{notes}" if delivery_note.notes else notes
                delivery_note.updated_by_id = user_id
                delivery_note.save()
        except PostingRejected as exc:
            logger.warning(f"Dispatch posting rejected for delivery note {dn_id}: {exc}")
            return PostingResult(ok=False, error=str(exc))

        logger.info(f"Dispatch posted for {delivery_note.dn_no}: {len(movements)} movement(s)")
        return PostingResult(ok=True, movements=movements)

    def post_receipt(self, *, company_id, user_id, dn_id, business_unit_id, received_date,
                     notes, lines: List[ReceiptLine]) -> PostingResult:
        try:
            with transaction.atomic():
                delivery_note = self._lock_delivery_note(company_id, dn_id)
                items = self._lock_items(delivery_note, [line.delivery_note_item_id for line in lines])
                warehouse = delivery_note.requesting_warehouse

                errors = []
                locations = {}
                default_location = None
                for line in lines:
                    if line.location_id:
                        location = StorageLocation.objects.filter(
                            pk=line.location_id, warehouse=warehouse, is_active=True
                        ).first()
                        if location is None:
                            errors.append(f"Location {line.location_id} is not in {warehouse.name}")
                            continue
                    else:
                        if default_location is None:
                            default_location = warehouse.default_location()
                        location = default_location
                    locations[line.delivery_note_item_id] = location

                    item = items[line.delivery_note_item_id]
                    if line.quantity > item.outstanding_receipt_qty:
                        errors.append(
                            f"'{item.product.name}': receipt {line.quantity} exceeds outstanding {item.outstanding_receipt_qty}"
                        )
                if errors:
                    raise PostingRejected(errors)

                balances = self._lock_balances(
                    WarehouseStock,
                    {item.product_id for item in items.values()},
                    filters={'warehouse': warehouse},
                    defaults={'business_id': company_id},
                )

                movements = []
                for line in sorted(lines, key=lambda entry: str(items[entry.delivery_note_item_id].product_id)):
                    item = items[line.delivery_note_item_id]
                    location = locations[line.delivery_note_item_id]
                    balance = balances[item.product_id]
                    qty_before = balance.quantity
                    balance.quantity += line.quantity
                    balance.save(update_fields=['quantity', 'updated_at'])

                    bin_stock, _ = LocationStock.objects.select_for_update().get_or_create(
                        location=location,
                        product_id=item.product_id,
                        defaults={'quantity': ZERO},
                    )
                    bin_stock.quantity += line.quantity
                    bin_stock.save(update_fields=['quantity', 'updated_at'])

                    movements.append(StockMovement.objects.create(
                        business_id=company_id,
                        business_unit_id=business_unit_id,
                        warehouse=warehouse,
                        location=location,
                        product_id=item.product_id,
                        uom_id=item.uom_id,
                        movement_type=StockMovement.TYPE_RECEIPT,
                        quantity=line.quantity,
                        qty_before=qty_before,
                        qty_after=balance.quantity,
                        reference_type='delivery_note',
                        reference_id=delivery_note.pk,
                        reference_number=delivery_note.dn_no,
                        notes=notes or None,
                        created_by_id=user_id,
                    ))
                    item.received_qty += line.quantity
                    item.save(update_fields=['received_qty', 'updated_at'])

                all_items = list(delivery_note.items.all())
                fully_received = all(item.received_qty == item.dispatched_qty for item in all_items)
                delivery_note.received_date = received_date or timezone.localdate()
                if fully_received:
                    delivery_note.status = DeliveryNoteStatus.RECEIVED
                    delivery_note.received_at = timezone.now()
                    delivery_note.received_by_id = user_id
                if notes:
                    delivery_note.notes = f"{delivery_note.notes}\n\n{notes}" if delivery_note.notes else notes
                delivery_note.updated_by_id = user_id
                delivery_note.save()
        except PostingRejected as exc:
            logger.warning(f"Receipt posting rejected for delivery note {dn_id}: {exc}")
            return PostingResult(ok=False, error=str(exc))

        logger.info(f"Receipt posted for {delivery_note.dn_no}: {len(movements)} movement(s)")
        return PostingResult(ok=True, movements=movements)
