from datetime import date
from decimal import Decimal
from unittest.mock import Mock

from django.test import TestCase

from inventory.dispatch_services import DispatchPoster, ReceiptRecorder
from inventory.fulfillment_exceptions import (
    FulfillmentValidationError,
    InvalidTransition,
    PostingFailure,
)
from inventory.fulfillment_states import DeliveryNoteStatus
from inventory.inventory_posting import PostingResult
from inventory.models import LocationStock, StockMovement, StorageLocation, WarehouseStock
from inventory.stock_request_services import StockRequestManager
from tests.utils import FulfillmentTestMixin, create_warehouse, set_stock


def stock_of(warehouse, product):
    row = WarehouseStock.objects.filter(warehouse=warehouse, product=product).first()
    return row.quantity if row else Decimal('0')


class DispatchTests(FulfillmentTestMixin, TestCase):
    def setUp(self):
        self.setUpFulfillment()
        self.poster = DispatchPoster(self.context)

    def test_dispatch_everything_picked(self):
        delivery_note = self.ready_note(self.approved_request({self.widget: 100}), picked={self.widget: 90})

        delivery_note = self.poster.dispatch(
            delivery_note.id,
            driver_name='Kofi Mensah',
            driver_signature='data:image/png;base64,AAAA',
            dispatch_date=date(2026, 3, 2),
        )

        item = delivery_note.items.get()
        self.assertEqual(delivery_note.status, DeliveryNoteStatus.DISPATCHED)
        self.assertEqual(delivery_note.driver_name, 'Kofi Mensah')
        self.assertEqual(delivery_note.dispatch_date, date(2026, 3, 2))
        self.assertEqual(delivery_note.dispatched_by, self.owner)
        self.assertEqual(item.dispatched_qty, Decimal('90'))
        self.assertEqual(stock_of(self.main, self.widget), Decimal('410'))

        movement = StockMovement.objects.get(reference_id=delivery_note.id)
        self.assertEqual(movement.movement_type, StockMovement.TYPE_DISPATCH)
        self.assertEqual(movement.quantity, Decimal('-90'))
        self.assertEqual(movement.qty_before, Decimal('500'))
        self.assertEqual(movement.qty_after, Decimal('410'))
        self.assertEqual(movement.reference_number, delivery_note.dn_no)

    def test_split_dispatch(self):
        delivery_note = self.ready_note(self.approved_request({self.widget: 50}))
        item = delivery_note.items.get()

        self.poster.dispatch(delivery_note.id, items=[{'delivery_note_item_id': item.id, 'dispatch_qty': Decimal('20')}])
        delivery_note = self.poster.dispatch(delivery_note.id, items=[{'delivery_note_item_id': item.id, 'dispatch_qty': Decimal('30')}])

        item.refresh_from_db()
        self.assertEqual(delivery_note.status, DeliveryNoteStatus.DISPATCHED)
        self.assertEqual(item.dispatched_qty, Decimal('50'))
        self.assertEqual(StockMovement.objects.filter(reference_id=delivery_note.id).count(), 2)

        with self.assertRaises(FulfillmentValidationError) as ctx:
            self.poster.dispatch(delivery_note.id)
        self.assertEqual(ctx.exception.detail['code'], 'nothing_to_dispatch')

    def test_explicit_zero_skips_line(self):
        stock_request = self.approved_request({self.widget: 10, self.gadget: 10})
        delivery_note = self.ready_note(stock_request)
        gadget_line = delivery_note.items.get(product=self.gadget)

        self.poster.dispatch(
            delivery_note.id,
            items=[{'delivery_note_item_id': gadget_line.id, 'dispatch_qty': Decimal('0')}],
        )

        gadget_line.refresh_from_db()
        self.assertEqual(gadget_line.dispatched_qty, Decimal('0'))
        self.assertEqual(delivery_note.items.get(product=self.widget).dispatched_qty, Decimal('10'))

    def test_dispatch_cannot_exceed_picked(self):
        delivery_note = self.ready_note(self.approved_request({self.widget: 10}), picked={self.widget: 6})
        item = delivery_note.items.get()
        with self.assertRaises(FulfillmentValidationError):
            self.poster.dispatch(delivery_note.id, items=[{'delivery_note_item_id': item.id, 'dispatch_qty': Decimal('7')}])

    def test_dispatch_requires_ready_note(self):
        delivery_note = self.confirmed_note(self.approved_request())
        with self.assertRaises(InvalidTransition):
            self.poster.dispatch(delivery_note.id)

    def test_foreign_line_rejected(self):
        delivery_note = self.ready_note(self.approved_request({self.widget: 10}))
        other_note = self.ready_note(self.approved_request({self.gadget: 10}))
        with self.assertRaises(FulfillmentValidationError):
            self.poster.dispatch(
                delivery_note.id,
                items=[{'delivery_note_item_id': other_note.items.get().id, 'dispatch_qty': Decimal('1')}],
            )

    def test_insufficient_stock_rolls_back(self):
        set_stock(self.main, self.widget, 40)
        delivery_note = self.ready_note(self.approved_request({self.widget: 50}))

        with self.assertRaises(PostingFailure) as ctx:
            self.poster.dispatch(delivery_note.id)
        self.assertIn('insufficient stock', str(ctx.exception.detail))

        delivery_note.refresh_from_db()
        self.assertEqual(delivery_note.status, DeliveryNoteStatus.DISPATCH_READY)
        self.assertEqual(delivery_note.items.get().dispatched_qty, Decimal('0'))
        self.assertEqual(stock_of(self.main, self.widget), Decimal('40'))
        self.assertFalse(StockMovement.objects.exists())

    def test_rejected_posting_keeps_status(self):
        delivery_note = self.ready_note(self.approved_request({self.widget: 10}))
        posting = Mock()
        posting.post_dispatch.return_value = PostingResult(ok=False, error='ledger offline')

        with self.assertRaises(PostingFailure):
            DispatchPoster(self.context, posting_service=posting).dispatch(delivery_note.id)

        delivery_note.refresh_from_db()
        self.assertEqual(delivery_note.status, DeliveryNoteStatus.DISPATCH_READY)
        posting.post_dispatch.assert_called_once()
        self.assertEqual(len(posting.post_dispatch.call_args.kwargs['lines']), 1)


class ReceiptTests(FulfillmentTestMixin, TestCase):
    def setUp(self):
        self.setUpFulfillment()
        self.recorder = ReceiptRecorder(self.context)

    def dispatched_note(self, quantities=None, picked=None):
        delivery_note = self.ready_note(self.approved_request(quantities), picked=picked)
        return DispatchPoster(self.context).dispatch(delivery_note.id)

    def test_round_trip_with_shortfall(self):
        stock_request = self.approved_request({self.widget: 100})
        delivery_note = self.ready_note(stock_request, picked={self.widget: 90})
        DispatchPoster(self.context).dispatch(delivery_note.id)

        delivery_note = self.recorder.receive(delivery_note.id, received_date=date(2026, 3, 4))

        item = delivery_note.items.get()
        self.assertEqual(delivery_note.status, DeliveryNoteStatus.RECEIVED)
        self.assertEqual(delivery_note.received_date, date(2026, 3, 4))
        self.assertEqual(
            (item.allocated_qty, item.picked_qty, item.short_qty, item.dispatched_qty, item.received_qty),
            (Decimal('100'), Decimal('90'), Decimal('10'), Decimal('90'), Decimal('90')),
        )
        self.assertEqual(stock_of(self.branch, self.widget), Decimal('90'))
        default_location = StorageLocation.objects.get(warehouse=self.branch, code=StorageLocation.DEFAULT_CODE)
        self.assertEqual(
            LocationStock.objects.get(location=default_location, product=self.widget).quantity,
            Decimal('90'),
        )
        self.assertEqual(stock_request.items.get().fulfilled_quantity, Decimal('90'))

    def test_partial_receipt_keeps_dispatched(self):
        delivery_note = self.dispatched_note({self.widget: 10})
        item = delivery_note.items.get()

        delivery_note = self.recorder.receive(
            delivery_note.id, items=[{'delivery_note_item_id': item.id, 'received_qty': Decimal('4')}]
        )
        self.assertEqual(delivery_note.status, DeliveryNoteStatus.DISPATCHED)

        delivery_note = self.recorder.receive(delivery_note.id)
        self.assertEqual(delivery_note.status, DeliveryNoteStatus.RECEIVED)
        self.assertEqual(stock_of(self.branch, self.widget), Decimal('10'))

        with self.assertRaises(FulfillmentValidationError) as ctx:
            DispatchPoster(self.context).dispatch(delivery_note.id)
        self.assertEqual(ctx.exception.detail['code'], 'nothing_to_dispatch')

    def test_partial_dispatch_fully_received_then_remainder_shipped(self):
        delivery_note = self.ready_note(self.approved_request({self.widget: 50}))
        item = delivery_note.items.get()
        poster = DispatchPoster(self.context)
        poster.dispatch(delivery_note.id, items=[{'delivery_note_item_id': item.id, 'dispatch_qty': Decimal('20')}])

        delivery_note = self.recorder.receive(delivery_note.id)

        item.refresh_from_db()
        self.assertEqual(delivery_note.status, DeliveryNoteStatus.RECEIVED)
        self.assertEqual((item.dispatched_qty, item.received_qty), (Decimal('20'), Decimal('20')))
        self.assertIsNotNone(delivery_note.received_at)

        delivery_note = poster.dispatch(delivery_note.id)
        self.assertEqual(delivery_note.status, DeliveryNoteStatus.DISPATCHED)
        self.assertIsNone(delivery_note.received_at)
        self.assertEqual(delivery_note.items.get().dispatched_qty, Decimal('50'))

        delivery_note = self.recorder.receive(delivery_note.id)
        self.assertEqual(delivery_note.status, DeliveryNoteStatus.RECEIVED)
        self.assertEqual(stock_of(self.branch, self.widget), Decimal('50'))

    def test_nothing_to_receive(self):
        delivery_note = self.dispatched_note({self.widget: 10})
        self.recorder.receive(delivery_note.id)
        with self.assertRaises(FulfillmentValidationError) as ctx:
            self.recorder.receive(delivery_note.id)
        self.assertEqual(ctx.exception.detail['code'], 'nothing_to_receive')

    def test_receipt_cannot_exceed_dispatched(self):
        delivery_note = self.dispatched_note({self.widget: 10})
        item = delivery_note.items.get()
        with self.assertRaises(FulfillmentValidationError):
            self.recorder.receive(
                delivery_note.id, items=[{'delivery_note_item_id': item.id, 'received_qty': Decimal('11')}]
            )
        item.refresh_from_db()
        self.assertEqual(item.received_qty, Decimal('0'))

    def test_receive_into_named_location(self):
        bin_a = StorageLocation.objects.create(warehouse=self.branch, code='A-01', name='Aisle A')
        delivery_note = self.dispatched_note({self.widget: 10})
        item = delivery_note.items.get()

        self.recorder.receive(
            delivery_note.id,
            items=[{'delivery_note_item_id': item.id, 'received_qty': Decimal('10'), 'location_id': bin_a.id}],
        )

        self.assertEqual(LocationStock.objects.get(location=bin_a, product=self.widget).quantity, Decimal('10'))
        movement = StockMovement.objects.get(movement_type=StockMovement.TYPE_RECEIPT)
        self.assertEqual(movement.location, bin_a)
        self.assertEqual(movement.warehouse, self.branch)

    def test_location_must_belong_to_receiving_warehouse(self):
        elsewhere = create_warehouse(self.business, 'BR09')
        foreign_bin = StorageLocation.objects.create(warehouse=elsewhere, code='X-01')
        delivery_note = self.dispatched_note({self.widget: 10})
        item = delivery_note.items.get()

        with self.assertRaises(FulfillmentValidationError):
            self.recorder.receive(
                delivery_note.id,
                items=[{'delivery_note_item_id': item.id, 'received_qty': Decimal('10'), 'location_id': foreign_bin.id}],
            )

    def test_receipt_requires_dispatch(self):
        delivery_note = self.ready_note(self.approved_request())
        with self.assertRaises(InvalidTransition):
            self.recorder.receive(delivery_note.id)

    def test_full_receipt_allows_completion(self):
        stock_request = self.approved_request({self.widget: 10})
        delivery_note = self.ready_note(stock_request)
        DispatchPoster(self.context).dispatch(delivery_note.id)
        self.recorder.receive(delivery_note.id)

        stock_request = StockRequestManager(self.context).complete(stock_request.id)
        self.assertEqual(stock_request.status, 'completed')
        self.assertEqual(stock_request.completed_by, self.owner)
