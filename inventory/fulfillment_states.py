"""
Status enums and transition tables for the fulfillment pipeline.

Each document type has a closed set of statuses and a table listing, for every
status, the statuses it may move to. Services consult these tables before any
write so the legal moves live in one place.
"""
from django.db import models


class StockRequestStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    SUBMITTED = 'submitted', 'Submitted'
    APPROVED = 'approved', 'Approved'
    CANCELLED = 'cancelled', 'Cancelled'
    COMPLETED = 'completed', 'Completed'


class StockRequestPriority(models.TextChoices):
    LOW = 'low', 'Low'
    NORMAL = 'normal', 'Normal'
    HIGH = 'high', 'High'
    URGENT = 'urgent', 'Urgent'


class DeliveryNoteStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    CONFIRMED = 'confirmed', 'Confirmed'
    QUEUED_FOR_PICKING = 'queued_for_picking', 'Queued for Picking'
    PICKING_IN_PROGRESS = 'picking_in_progress', 'Picking in Progress'
    DISPATCH_READY = 'dispatch_ready', 'Ready to Dispatch'
    DISPATCHED = 'dispatched', 'Dispatched'
    RECEIVED = 'received', 'Received'
    VOIDED = 'voided', 'Voided'


class PickListStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    IN_PROGRESS = 'in_progress', 'In Progress'
    PAUSED = 'paused', 'Paused'
    CANCELLED = 'cancelled', 'Cancelled'
    DONE = 'done', 'Done'


class FulfillmentStatus(models.TextChoices):
    """Physical fulfillment stage of a stock request, derived from its delivery notes."""
    PENDING_DELIVERY_NOTE = 'pending_delivery_note', 'Pending Delivery Note'
    AWAITING_CONFIRMATION = 'awaiting_confirmation', 'Awaiting Confirmation'
    QUEUED_FOR_PICKING = 'queued_for_picking', 'Queued for Picking'
    PICKING_IN_PROGRESS = 'picking_in_progress', 'Picking in Progress'
    READY_TO_DISPATCH = 'ready_to_dispatch', 'Ready to Dispatch'
    IN_TRANSIT = 'in_transit', 'In Transit'
    PARTIALLY_RECEIVED = 'partially_received', 'Partially Received'
    RECEIVED = 'received', 'Received'
    VOIDED = 'voided', 'Voided'


STOCK_REQUEST_TRANSITIONS = {
    StockRequestStatus.DRAFT: frozenset({StockRequestStatus.SUBMITTED, StockRequestStatus.CANCELLED}),
    StockRequestStatus.SUBMITTED: frozenset({StockRequestStatus.APPROVED, StockRequestStatus.CANCELLED}),
    StockRequestStatus.APPROVED: frozenset({StockRequestStatus.COMPLETED, StockRequestStatus.CANCELLED}),
    StockRequestStatus.CANCELLED: frozenset(),
    StockRequestStatus.COMPLETED: frozenset(),
}

VOIDABLE_DELIVERY_NOTE_STATUSES = frozenset({
    DeliveryNoteStatus.DRAFT,
    DeliveryNoteStatus.CONFIRMED,
    DeliveryNoteStatus.QUEUED_FOR_PICKING,
    DeliveryNoteStatus.PICKING_IN_PROGRESS,
    DeliveryNoteStatus.DISPATCH_READY,
})

DELIVERY_NOTE_TRANSITIONS = {
    DeliveryNoteStatus.DRAFT: frozenset({DeliveryNoteStatus.CONFIRMED, DeliveryNoteStatus.VOIDED}),
    DeliveryNoteStatus.CONFIRMED: frozenset({DeliveryNoteStatus.QUEUED_FOR_PICKING, DeliveryNoteStatus.VOIDED}),
    DeliveryNoteStatus.QUEUED_FOR_PICKING: frozenset({DeliveryNoteStatus.PICKING_IN_PROGRESS, DeliveryNoteStatus.VOIDED}),
    DeliveryNoteStatus.PICKING_IN_PROGRESS: frozenset({
        DeliveryNoteStatus.DISPATCH_READY,
        DeliveryNoteStatus.QUEUED_FOR_PICKING,
        DeliveryNoteStatus.VOIDED,
    }),
    DeliveryNoteStatus.DISPATCH_READY: frozenset({DeliveryNoteStatus.DISPATCHED, DeliveryNoteStatus.VOIDED}),
    # Split shipments and partial receipts keep a note in dispatched
    DeliveryNoteStatus.DISPATCHED: frozenset({DeliveryNoteStatus.DISPATCHED, DeliveryNoteStatus.RECEIVED}),
    DeliveryNoteStatus.RECEIVED: frozenset({DeliveryNoteStatus.RECEIVED, DeliveryNoteStatus.DISPATCHED}),
    DeliveryNoteStatus.VOIDED: frozenset(),
}

OPEN_PICK_LIST_STATUSES = frozenset({
    PickListStatus.PENDING,
    PickListStatus.IN_PROGRESS,
    PickListStatus.PAUSED,
})

ACTIVE_PICK_LIST_STATUSES = frozenset({
    PickListStatus.IN_PROGRESS,
    PickListStatus.PAUSED,
})

PICK_LIST_TRANSITIONS = {
    PickListStatus.PENDING: frozenset({PickListStatus.IN_PROGRESS, PickListStatus.CANCELLED}),
    PickListStatus.IN_PROGRESS: frozenset({PickListStatus.PAUSED, PickListStatus.DONE, PickListStatus.CANCELLED}),
    PickListStatus.PAUSED: frozenset({PickListStatus.IN_PROGRESS, PickListStatus.CANCELLED}),
    PickListStatus.CANCELLED: frozenset(),
    PickListStatus.DONE: frozenset(),
}


def can_transition(table, current, target) -> bool:
    """Return True when ``table`` allows moving from ``current`` to ``target``."""
    return target in table.get(current, frozenset())
