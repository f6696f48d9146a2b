"""
Voidability policy for delivery notes and stock requests.

Stock only moves at dispatch and receipt, both past the voidable window, so a
void never has stock to reverse.
"""
from inventory.fulfillment_exceptions import InvalidTransition
from inventory.fulfillment_states import (
    STOCK_REQUEST_TRANSITIONS,
    VOIDABLE_DELIVERY_NOTE_STATUSES,
    StockRequestStatus,
    can_transition,
)


def can_void(status) -> bool:
    return status in VOIDABLE_DELIVERY_NOTE_STATUSES


def ensure_voidable(delivery_note):
    if not can_void(delivery_note.status):
        raise InvalidTransition('delivery note', delivery_note.status, 'void')


def can_cancel_request(status) -> bool:
    return can_transition(STOCK_REQUEST_TRANSITIONS, status, StockRequestStatus.CANCELLED)


def ensure_cancellable(stock_request):
    if not can_cancel_request(stock_request.status):
        raise InvalidTransition('stock request', stock_request.status, 'cancel')
