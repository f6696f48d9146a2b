"""
Derived fulfillment status.

``compute_derived_status`` works on records passed in by the caller and never
touches the database, so the stored stock request status (approval workflow)
and the derived status (physical progress) are always reported side by side
and never written back.
"""
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from inventory.fulfillment_states import (
    ACTIVE_PICK_LIST_STATUSES,
    DeliveryNoteStatus,
    FulfillmentStatus,
    OPEN_PICK_LIST_STATUSES,
)
from inventory.models import DeliveryNote, DeliveryNoteItem, PickList, StockRequest
from inventory.service_base import ScopedService
from inventory.void_guard import can_void


ZERO = Decimal('0')

STAGE_RANK = {
    FulfillmentStatus.AWAITING_CONFIRMATION: 1,
    FulfillmentStatus.QUEUED_FOR_PICKING: 2,
    FulfillmentStatus.PICKING_IN_PROGRESS: 3,
    FulfillmentStatus.READY_TO_DISPATCH: 4,
    FulfillmentStatus.IN_TRANSIT: 5,
    FulfillmentStatus.RECEIVED: 6,
}

_STAGE_BY_STATUS = {
    DeliveryNoteStatus.DRAFT: FulfillmentStatus.AWAITING_CONFIRMATION,
    DeliveryNoteStatus.CONFIRMED: FulfillmentStatus.QUEUED_FOR_PICKING,
    DeliveryNoteStatus.QUEUED_FOR_PICKING: FulfillmentStatus.QUEUED_FOR_PICKING,
    DeliveryNoteStatus.PICKING_IN_PROGRESS: FulfillmentStatus.PICKING_IN_PROGRESS,
    DeliveryNoteStatus.DISPATCH_READY: FulfillmentStatus.READY_TO_DISPATCH,
    DeliveryNoteStatus.DISPATCHED: FulfillmentStatus.IN_TRANSIT,
    DeliveryNoteStatus.RECEIVED: FulfillmentStatus.RECEIVED,
    DeliveryNoteStatus.VOIDED: FulfillmentStatus.VOIDED,
}


@dataclass
class DeliveryNoteStage:
    id: str
    dn_no: str
    status: str
    stage: str


@dataclass
class FulfillmentProjection:
    stock_request_id: str
    stored_status: str
    derived_status: str
    delivery_notes: List[DeliveryNoteStage] = field(default_factory=list)
    totals: Dict[str, Decimal] = field(default_factory=dict)

    def as_dict(self):
        return asdict(self)


def _is_active_pick_list(pick_list):
    return getattr(pick_list, 'deleted_at', None) is None and pick_list.status in ACTIVE_PICK_LIST_STATUSES


def delivery_note_stage(delivery_note, pick_lists: Iterable = ()):
    """Map one delivery note to its fulfillment stage."""
    stage = _STAGE_BY_STATUS[delivery_note.status]
    if stage == FulfillmentStatus.QUEUED_FOR_PICKING and any(
        pick_list.delivery_note_id == delivery_note.id and _is_active_pick_list(pick_list)
        for pick_list in pick_lists
    ):
        stage = FulfillmentStatus.PICKING_IN_PROGRESS
    return stage


def compute_derived_status(stock_request, delivery_notes, pick_lists,
                           delivery_note_items: Iterable = (), stock_request_items: Iterable = ()):
    delivery_notes = list(delivery_notes)
    pick_lists = list(pick_lists)

    stages = [
        DeliveryNoteStage(
            id=str(dn.id),
            dn_no=dn.dn_no,
            status=str(dn.status),
            stage=str(delivery_note_stage(dn, pick_lists)),
        )
        for dn in delivery_notes
    ]
    live = [stage for stage in stages if stage.stage != FulfillmentStatus.VOIDED]

    if not stages:
        derived = FulfillmentStatus.PENDING_DELIVERY_NOTE
    elif not live:
        derived = FulfillmentStatus.VOIDED
    else:
        received = sum(1 for stage in live if stage.stage == FulfillmentStatus.RECEIVED)
        if received == len(live):
            derived = FulfillmentStatus.RECEIVED
        elif received:
            derived = FulfillmentStatus.PARTIALLY_RECEIVED
        else:
            derived = max((FulfillmentStatus(stage.stage) for stage in live), key=STAGE_RANK.__getitem__)

    live_ids = {stage.id for stage in live}
    totals = {
        'requested_qty': sum((item.requested_qty for item in stock_request_items), ZERO),
        'allocated_qty': ZERO,
        'picked_qty': ZERO,
        'short_qty': ZERO,
        'dispatched_qty': ZERO,
        'received_qty': ZERO,
    }
    for item in delivery_note_items:
        if str(item.delivery_note_id) not in live_ids or item.stock_request_id != stock_request.id:
            continue
        for key in ('allocated_qty', 'picked_qty', 'short_qty', 'dispatched_qty', 'received_qty'):
            totals[key] += getattr(item, key)

    return FulfillmentProjection(
        stock_request_id=str(stock_request.id),
        stored_status=str(stock_request.status),
        derived_status=str(derived),
        delivery_notes=stages,
        totals=totals,
    )


@dataclass
class DeliveryNoteStatusView:
    id: str
    dn_no: str
    status: str
    stage: str
    voidable: bool
    open_pick_list_id: Optional[str]
    pick_lists: List[Dict[str, str]] = field(default_factory=list)

    def as_dict(self):
        return asdict(self)


def delivery_note_view(delivery_note, pick_lists):
    pick_lists = [pl for pl in pick_lists if getattr(pl, 'deleted_at', None) is None]
    open_list = next((pl for pl in pick_lists if pl.status in OPEN_PICK_LIST_STATUSES), None)
    return DeliveryNoteStatusView(
        id=str(delivery_note.id),
        dn_no=delivery_note.dn_no,
        status=str(delivery_note.status),
        stage=str(delivery_note_stage(delivery_note, pick_lists)),
        voidable=can_void(delivery_note.status),
        open_pick_list_id=str(open_list.id) if open_list else None,
        pick_lists=[
            {'id': str(pl.id), 'pick_list_no': pl.pick_list_no, 'status': str(pl.status)}
            for pl in pick_lists
        ],
    )


class FulfillmentStatusProjector(ScopedService):
    """Loads the records for a projection. Read-only."""

    entity_label = 'stock request'

    def project(self, stock_request_id):
        stock_request = self.get_scoped(StockRequest.objects.alive(), stock_request_id)
        delivery_notes = list(
            DeliveryNote.objects.filter(
                business_id=self.context.company_id,
                sources__stock_request=stock_request,
            ).order_by('created_at')
        )
        pick_lists = PickList.objects.alive().filter(delivery_note__in=delivery_notes)
        dn_items = DeliveryNoteItem.objects.filter(
            delivery_note__in=delivery_notes,
            stock_request=stock_request,
        )
        return compute_derived_status(
            stock_request,
            delivery_notes,
            pick_lists,
            delivery_note_items=dn_items,
            stock_request_items=stock_request.items.all(),
        )

    def delivery_note_status(self, delivery_note_id):
        delivery_note = self.get_scoped(DeliveryNote.objects.all(), delivery_note_id, label='delivery note')
        pick_lists = delivery_note.pick_lists.alive().order_by('created_at')
        return delivery_note_view(delivery_note, pick_lists)
