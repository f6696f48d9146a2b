from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

from django.test import SimpleTestCase, TestCase

from inventory.dispatch_services import DispatchPoster, ReceiptRecorder
from inventory.fulfillment_projection import (
    FulfillmentStatusProjector,
    compute_derived_status,
    delivery_note_view,
)
from inventory.fulfillment_states import FulfillmentStatus
from tests.utils import FulfillmentTestMixin


def request_stub(status='approved'):
    return SimpleNamespace(id=uuid4(), status=status)


def note_stub(status, dn_no=None):
    return SimpleNamespace(id=uuid4(), dn_no=dn_no or f"DN-{uuid4().hex[:6]}", status=status)


def pick_list_stub(delivery_note, status, deleted_at=None):
    return SimpleNamespace(
        id=uuid4(),
        pick_list_no=f"PL-{uuid4().hex[:6]}",
        delivery_note_id=delivery_note.id,
        status=status,
        deleted_at=deleted_at,
    )


def line_stub(delivery_note, stock_request, **quantities):
    values = {key: Decimal('0') for key in ('allocated_qty', 'picked_qty', 'short_qty', 'dispatched_qty', 'received_qty')}
    values.update({key: Decimal(str(value)) for key, value in quantities.items()})
    return SimpleNamespace(delivery_note_id=delivery_note.id, stock_request_id=stock_request.id, **values)


class DerivedStatusTests(SimpleTestCase):
    def test_no_delivery_notes(self):
        projection = compute_derived_status(request_stub(), [], [])
        self.assertEqual(projection.derived_status, FulfillmentStatus.PENDING_DELIVERY_NOTE)
        self.assertEqual(projection.stored_status, 'approved')

    def test_only_voided_notes(self):
        notes = [note_stub('voided'), note_stub('voided')]
        projection = compute_derived_status(request_stub(), notes, [])
        self.assertEqual(projection.derived_status, FulfillmentStatus.VOIDED)

    def test_stage_per_note_status(self):
        expected = {
            'draft': FulfillmentStatus.AWAITING_CONFIRMATION,
            'confirmed': FulfillmentStatus.QUEUED_FOR_PICKING,
            'queued_for_picking': FulfillmentStatus.QUEUED_FOR_PICKING,
            'picking_in_progress': FulfillmentStatus.PICKING_IN_PROGRESS,
            'dispatch_ready': FulfillmentStatus.READY_TO_DISPATCH,
            'dispatched': FulfillmentStatus.IN_TRANSIT,
            'received': FulfillmentStatus.RECEIVED,
        }
        for status, stage in expected.items():
            with self.subTest(status=status):
                projection = compute_derived_status(request_stub(), [note_stub(status)], [])
                self.assertEqual(projection.derived_status, stage)

    def test_active_pick_list_promotes_queued_note(self):
        note = note_stub('queued_for_picking')
        for status, stage in (
            ('pending', FulfillmentStatus.QUEUED_FOR_PICKING),
            ('in_progress', FulfillmentStatus.PICKING_IN_PROGRESS),
            ('paused', FulfillmentStatus.PICKING_IN_PROGRESS),
        ):
            with self.subTest(status=status):
                projection = compute_derived_status(request_stub(), [note], [pick_list_stub(note, status)])
                self.assertEqual(projection.derived_status, stage)

    def test_deleted_pick_list_ignored(self):
        note = note_stub('confirmed')
        pick_list = pick_list_stub(note, 'in_progress', deleted_at='2026-01-01')
        projection = compute_derived_status(request_stub(), [note], [pick_list])
        self.assertEqual(projection.derived_status, FulfillmentStatus.QUEUED_FOR_PICKING)

    def test_furthest_live_note_wins(self):
        notes = [note_stub('draft'), note_stub('dispatched'), note_stub('voided')]
        projection = compute_derived_status(request_stub(), notes, [])
        self.assertEqual(projection.derived_status, FulfillmentStatus.IN_TRANSIT)
        self.assertEqual([stage.stage for stage in projection.delivery_notes],
                         ['awaiting_confirmation', 'in_transit', 'voided'])

    def test_partially_received(self):
        notes = [note_stub('received'), note_stub('dispatched')]
        projection = compute_derived_status(request_stub(), notes, [])
        self.assertEqual(projection.derived_status, FulfillmentStatus.PARTIALLY_RECEIVED)

    def test_received_ignores_voided_notes(self):
        notes = [note_stub('received'), note_stub('voided')]
        projection = compute_derived_status(request_stub(), notes, [])
        self.assertEqual(projection.derived_status, FulfillmentStatus.RECEIVED)

    def test_totals_skip_voided_notes_and_other_requests(self):
        stock_request = request_stub()
        other_request = request_stub()
        live = note_stub('dispatched')
        voided = note_stub('voided')
        lines = [
            line_stub(live, stock_request, allocated_qty=100, picked_qty=90, short_qty=10, dispatched_qty=90),
            line_stub(live, other_request, allocated_qty=5, picked_qty=5),
            line_stub(voided, stock_request, allocated_qty=40),
        ]
        requested = [SimpleNamespace(requested_qty=Decimal('100')), SimpleNamespace(requested_qty=Decimal('20'))]

        projection = compute_derived_status(
            stock_request, [live, voided], [], delivery_note_items=lines, stock_request_items=requested
        )

        self.assertEqual(projection.totals, {
            'requested_qty': Decimal('120'),
            'allocated_qty': Decimal('100'),
            'picked_qty': Decimal('90'),
            'short_qty': Decimal('10'),
            'dispatched_qty': Decimal('90'),
            'received_qty': Decimal('0'),
        })

    def test_as_dict_is_plain(self):
        note = note_stub('draft', dn_no='DN-2026030100001')
        data = compute_derived_status(request_stub(), [note], []).as_dict()
        self.assertEqual(data['delivery_notes'][0]['dn_no'], 'DN-2026030100001')
        self.assertEqual(data['derived_status'], 'awaiting_confirmation')


class DeliveryNoteViewTests(SimpleTestCase):
    def test_open_pick_list_and_voidability(self):
        note = note_stub('queued_for_picking')
        cancelled = pick_list_stub(note, 'cancelled')
        pending = pick_list_stub(note, 'pending')

        view = delivery_note_view(note, [cancelled, pending])

        self.assertTrue(view.voidable)
        self.assertEqual(view.open_pick_list_id, str(pending.id))
        self.assertEqual(len(view.pick_lists), 2)

    def test_dispatched_note_not_voidable(self):
        view = delivery_note_view(note_stub('dispatched'), [])
        self.assertFalse(view.voidable)
        self.assertIsNone(view.open_pick_list_id)


class FulfillmentStatusProjectorTests(FulfillmentTestMixin, TestCase):
    def setUp(self):
        self.setUpFulfillment()
        self.projector = FulfillmentStatusProjector(self.context)

    def test_projection_follows_the_pipeline(self):
        stock_request = self.approved_request({self.widget: 100})
        self.assertEqual(self.projector.project(stock_request.id).derived_status, 'pending_delivery_note')

        delivery_note = self.ready_note(stock_request, picked={self.widget: 90})
        self.assertEqual(self.projector.project(stock_request.id).derived_status, 'ready_to_dispatch')

        DispatchPoster(self.context).dispatch(delivery_note.id)
        ReceiptRecorder(self.context).receive(delivery_note.id)

        projection = self.projector.project(stock_request.id)
        self.assertEqual(projection.derived_status, 'received')
        self.assertEqual(projection.stored_status, 'approved')
        self.assertEqual(projection.totals['received_qty'], Decimal('90'))
        self.assertEqual(projection.totals['short_qty'], Decimal('10'))

    def test_delivery_note_status(self):
        stock_request = self.approved_request()
        delivery_note, pick_list = self.picking_note(stock_request)

        view = self.projector.delivery_note_status(delivery_note.id)

        self.assertEqual(view.stage, 'picking_in_progress')
        self.assertEqual(view.open_pick_list_id, str(pick_list.id))
