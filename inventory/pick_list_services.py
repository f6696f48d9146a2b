"""
Pick list coordination.

A delivery note has at most one open pick list at a time. Pick list status is
independent of the delivery note status except for two hooks: starting the
first pick moves the note to picking_in_progress, and cancelling the last open
pick list sends it back to queued_for_picking.
"""
import logging
from decimal import Decimal, InvalidOperation
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from accounts.models import BusinessMembership
from inventory.fulfillment_exceptions import (
    FulfillmentConflict,
    FulfillmentValidationError,
    InvalidTransition,
)
from inventory.fulfillment_states import (
    ACTIVE_PICK_LIST_STATUSES,
    DELIVERY_NOTE_TRANSITIONS,
    PICK_LIST_TRANSITIONS,
    DeliveryNoteStatus,
    PickListStatus,
    can_transition,
)
from inventory.models import DeliveryNote, PickList, PickListAssignee, PickListItem
from inventory.service_base import ScopedService


logger = logging.getLogger(__name__)

ZERO = Decimal('0')

PICKABLE_DELIVERY_NOTE_STATUSES = frozenset({
    DeliveryNoteStatus.CONFIRMED,
    DeliveryNoteStatus.QUEUED_FOR_PICKING,
})


def close_open_pick_lists(delivery_note, *, finish, picked=None):
    """
    Close every open pick list of ``delivery_note``.

    With ``finish`` lists being worked on become done and pending ones are
    cancelled; without it all of them are cancelled. ``picked`` maps delivery
    note item ids to items whose final picked quantity is mirrored onto the
    pick list lines.
    """
    now = timezone.now()
    closed = []
    for pick_list in PickList.objects.open().select_for_update().filter(delivery_note=delivery_note).order_by('pk'):
        previous = pick_list.status
        if finish and previous in ACTIVE_PICK_LIST_STATUSES:
            pick_list.status = PickListStatus.DONE
            pick_list.completed_at = now
        else:
            pick_list.status = PickListStatus.CANCELLED
            pick_list.cancelled_at = now
        pick_list.save(update_fields=['status', 'completed_at', 'cancelled_at', 'updated_at'])

        if picked:
            for line in pick_list.items.all():
                dn_item = picked.get(line.delivery_note_item_id)
                if dn_item is not None and line.picked_qty != dn_item.picked_qty:
                    line.picked_qty = dn_item.picked_qty
                    line.save(update_fields=['picked_qty', 'updated_at'])

        logger.info(f"Pick list {pick_list.pick_list_no}: {previous} -> {pick_list.status} ({delivery_note.dn_no})")
        closed.append(pick_list)
    return closed


class PickListCoordinator(ScopedService):
    entity_label = 'pick list'

    def queryset(self):
        return self.scope(PickList.objects.alive()).select_related('delivery_note', 'created_by')

    def get(self, pk):
        return self.get_scoped(PickList.objects.alive(), pk)

    def _lock_delivery_note(self, pk):
        return self.lock(DeliveryNote.objects.all(), pk, label='delivery note')

    def _pickers(self, picker_user_ids):
        if not picker_user_ids:
            raise FulfillmentValidationError({'picker_user_ids': 'At least one picker is required.'})
        wanted = {str(pk) for pk in picker_user_ids}
        memberships = BusinessMembership.objects.filter(
            business_id=self.context.company_id,
            user_id__in=wanted,
            is_active=True,
            user__is_active=True,
        ).select_related('user')
        users = {str(membership.user_id): membership.user for membership in memberships}
        missing = sorted(wanted - set(users))
        if missing:
            raise FulfillmentValidationError({
                'picker_user_ids': [f"User {pk} is not an active member of this business" for pk in missing]
            })
        return list(users.values())

    def _move_delivery_note(self, delivery_note, target, stamp=None):
        previous = delivery_note.status
        if not can_transition(DELIVERY_NOTE_TRANSITIONS, previous, target):
            raise InvalidTransition('delivery note', previous, f'move to {target}')
        delivery_note.status = target
        delivery_note.updated_by = self.user
        update_fields = ['status', 'updated_by', 'updated_at']
        if stamp:
            setattr(delivery_note, f'{stamp}_at', timezone.now())
            setattr(delivery_note, f'{stamp}_by', self.user)
            update_fields.extend([f'{stamp}_at', f'{stamp}_by'])
        delivery_note.save(update_fields=update_fields)
        self.audit('TRANSITION', delivery_note, from_status=previous, to_status=target)
        logger.info(f"Delivery note {delivery_note.dn_no}: {previous} -> {target}")

    def create(self, *, delivery_note_id, picker_user_ids, notes=''):
        pickers = self._pickers(picker_user_ids)

        with transaction.atomic():
            delivery_note = self._lock_delivery_note(delivery_note_id)
            if delivery_note.status not in PICKABLE_DELIVERY_NOTE_STATUSES:
                raise InvalidTransition('delivery note', delivery_note.status, 'create a pick list for')
            if PickList.objects.open().filter(delivery_note=delivery_note).exists():
                raise FulfillmentConflict(
                    f"Delivery note {delivery_note.dn_no} already has an open pick list."
                )

            pick_list = PickList.objects.create(
                business_id=self.context.company_id,
                business_unit_id=delivery_note.business_unit_id,
                delivery_note=delivery_note,
                notes=notes or '',
                created_by=self.user,
            )
            for picker in pickers:
                PickListAssignee.objects.create(pick_list=pick_list, user=picker, assigned_by=self.user)
            for dn_item in delivery_note.items.order_by('created_at', 'pk'):
                PickListItem.objects.create(
                    pick_list=pick_list,
                    delivery_note_item=dn_item,
                    allocated_qty=dn_item.allocated_qty,
                    picked_qty=ZERO,
                )

            if delivery_note.status == DeliveryNoteStatus.CONFIRMED:
                self._move_delivery_note(delivery_note, DeliveryNoteStatus.QUEUED_FOR_PICKING)
            self.audit('CREATE', pick_list, pick_list_no=pick_list.pick_list_no, dn_no=delivery_note.dn_no)

        logger.info(
            f"Pick list {pick_list.pick_list_no} created for {delivery_note.dn_no} with {len(pickers)} picker(s)"
        )
        return pick_list

    def update_status(self, pk, target):
        if target not in PickListStatus.values:
            raise FulfillmentValidationError({'status': f"'{target}' is not a pick list status."})

        with transaction.atomic():
            pick_list = self.lock(PickList.objects.alive(), pk)
            if pick_list.status == target:
                return pick_list

            previous = self.ensure_transition(PICK_LIST_TRANSITIONS, pick_list, target, f'move to {target}')
            delivery_note = self._lock_delivery_note(pick_list.delivery_note_id)
            now = timezone.now()

            if target == PickListStatus.IN_PROGRESS:
                if pick_list.started_at is None:
                    pick_list.started_at = now
                if delivery_note.status == DeliveryNoteStatus.QUEUED_FOR_PICKING:
                    self._move_delivery_note(
                        delivery_note, DeliveryNoteStatus.PICKING_IN_PROGRESS, stamp='picking_started'
                    )
            elif target == PickListStatus.DONE:
                if not pick_list.items.filter(picked_qty__gt=0).exists():
                    raise FulfillmentValidationError({
                        'detail': 'Record at least one picked quantity before marking the pick list done.',
                        'code': 'nothing_picked',
                    })
                pick_list.completed_at = now
            elif target == PickListStatus.CANCELLED:
                pick_list.cancelled_at = now

            pick_list.status = target
            pick_list.save(update_fields=['status', 'started_at', 'completed_at', 'cancelled_at', 'updated_at'])

            if target == PickListStatus.CANCELLED:
                self._release_delivery_note(delivery_note)

            self.audit('TRANSITION', pick_list, from_status=previous, to_status=target)

        logger.info(f"Pick list {pick_list.pick_list_no}: {previous} -> {target}")
        return pick_list

    def _release_delivery_note(self, delivery_note):
        """Send the note back to the picking queue once its last open pick list is cancelled."""
        if delivery_note.status != DeliveryNoteStatus.PICKING_IN_PROGRESS:
            return
        if PickList.objects.open().filter(delivery_note=delivery_note).exists():
            return
        delivery_note.items.update(picked_qty=ZERO, short_qty=ZERO, updated_at=timezone.now())
        self._move_delivery_note(delivery_note, DeliveryNoteStatus.QUEUED_FOR_PICKING)

    def update_items(self, pk, items):
        """Record picker progress. Each value replaces the previous one for its line."""
        if not items:
            raise FulfillmentValidationError({'items': 'At least one item is required.'})

        with transaction.atomic():
            pick_list = self.lock(PickList.objects.alive(), pk)
            if pick_list.status != PickListStatus.IN_PROGRESS:
                raise InvalidTransition(self.entity_label, pick_list.status, 'update items of')

            lines = list(
                pick_list.items.select_for_update()
                .select_related('delivery_note_item')
                .order_by('pk')
            )
            by_line = {line.pk: line for line in lines}
            by_dn_item = {line.delivery_note_item_id: line for line in lines}

            errors = []
            updates = []
            for index, entry in enumerate(items):
                label = f"Item {index + 1}"
                line = self._match_line(entry, by_line, by_dn_item)
                if line is None:
                    errors.append(f"{label}: not part of pick list {pick_list.pick_list_no}")
                    continue
                try:
                    quantity = Decimal(str(entry.get('picked_qty')))
                except (InvalidOperation, TypeError, ValueError):
                    errors.append(f"{label}: picked quantity is not a number")
                    continue
                if quantity < 0:
                    errors.append(f"{label}: picked quantity cannot be negative")
                    continue
                if quantity > line.allocated_qty:
                    errors.append(
                        f"{label}: picked quantity {quantity} exceeds allocated quantity {line.allocated_qty}"
                    )
                    continue
                updates.append((line, quantity))
            if errors:
                raise FulfillmentValidationError({'items': errors})

            for line, quantity in updates:
                line.picked_qty = quantity
                line.save(update_fields=['picked_qty', 'updated_at'])
                dn_item = line.delivery_note_item
                dn_item.picked_qty = quantity
                dn_item.save(update_fields=['picked_qty', 'updated_at'])

        logger.info(f"Pick list {pick_list.pick_list_no}: recorded progress on {len(updates)} line(s)")
        return pick_list

    @staticmethod
    def _match_line(entry, by_line, by_dn_item):
        for key, index in (('pick_list_item_id', by_line), ('delivery_note_item_id', by_dn_item)):
            raw = entry.get(key)
            if raw:
                try:
                    return index.get(UUID(str(raw)))
                except (TypeError, ValueError):
                    return None
        return None
