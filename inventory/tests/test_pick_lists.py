from decimal import Decimal

from django.test import TestCase

from accounts.models import BusinessMembership
from inventory.fulfillment_exceptions import (
    FulfillmentConflict,
    FulfillmentValidationError,
    InvalidTransition,
)
from inventory.fulfillment_states import DeliveryNoteStatus, PickListStatus
from inventory.pick_list_services import PickListCoordinator
from tests.utils import FulfillmentTestMixin, add_member, create_business, create_user


class PickListCreationTests(FulfillmentTestMixin, TestCase):
    def setUp(self):
        self.setUpFulfillment()
        self.coordinator = PickListCoordinator(self.context)
        self.picker = create_user(name='Picker')
        add_member(self.business, self.picker, role=BusinessMembership.STAFF)

    def test_create_snapshots_items_and_queues_note(self):
        stock_request = self.approved_request({self.widget: 30, self.gadget: 12})
        delivery_note = self.confirmed_note(stock_request)

        pick_list = self.coordinator.create(
            delivery_note_id=delivery_note.id,
            picker_user_ids=[self.picker.id, self.owner.id],
        )

        delivery_note.refresh_from_db()
        self.assertTrue(pick_list.pick_list_no.startswith('PL-'))
        self.assertEqual(pick_list.status, PickListStatus.PENDING)
        self.assertEqual(delivery_note.status, DeliveryNoteStatus.QUEUED_FOR_PICKING)
        self.assertEqual(pick_list.assignees.count(), 2)
        self.assertEqual(
            sorted(pick_list.items.values_list('allocated_qty', flat=True)),
            [Decimal('12'), Decimal('30')],
        )
        self.assertFalse(pick_list.items.filter(picked_qty__gt=0).exists())

    def test_second_open_pick_list_conflicts(self):
        delivery_note = self.confirmed_note(self.approved_request())
        self.coordinator.create(delivery_note_id=delivery_note.id, picker_user_ids=[self.picker.id])

        with self.assertRaises(FulfillmentConflict):
            self.coordinator.create(delivery_note_id=delivery_note.id, picker_user_ids=[self.owner.id])

    def test_new_pick_list_allowed_after_cancel(self):
        delivery_note = self.confirmed_note(self.approved_request())
        first = self.coordinator.create(delivery_note_id=delivery_note.id, picker_user_ids=[self.picker.id])
        self.coordinator.update_status(first.id, PickListStatus.CANCELLED)

        second = self.coordinator.create(delivery_note_id=delivery_note.id, picker_user_ids=[self.picker.id])
        self.assertNotEqual(first.pick_list_no, second.pick_list_no)

    def test_draft_note_not_pickable(self):
        delivery_note = self.draft_note(self.approved_request())
        with self.assertRaises(InvalidTransition):
            self.coordinator.create(delivery_note_id=delivery_note.id, picker_user_ids=[self.picker.id])

    def test_pickers_must_be_members(self):
        outsider = create_user(name='Outsider')
        create_business(outsider)
        delivery_note = self.confirmed_note(self.approved_request())

        with self.assertRaises(FulfillmentValidationError):
            self.coordinator.create(delivery_note_id=delivery_note.id, picker_user_ids=[outsider.id])

    def test_pickers_required(self):
        delivery_note = self.confirmed_note(self.approved_request())
        with self.assertRaises(FulfillmentValidationError):
            self.coordinator.create(delivery_note_id=delivery_note.id, picker_user_ids=[])


class PickListProgressTests(FulfillmentTestMixin, TestCase):
    def setUp(self):
        self.setUpFulfillment()
        self.coordinator = PickListCoordinator(self.context)

    def test_starting_moves_note_to_picking(self):
        delivery_note, pick_list = self.picking_note(self.approved_request())

        pick_list.refresh_from_db()
        self.assertEqual(delivery_note.status, DeliveryNoteStatus.PICKING_IN_PROGRESS)
        self.assertEqual(delivery_note.picking_started_by, self.owner)
        self.assertIsNotNone(pick_list.started_at)

    def test_update_items_mirrors_delivery_note(self):
        delivery_note, pick_list = self.picking_note(self.approved_request({self.widget: 20}))
        dn_item = delivery_note.items.get()

        self.coordinator.update_items(
            pick_list.id, [{'delivery_note_item_id': dn_item.id, 'picked_qty': Decimal('15')}]
        )
        line = pick_list.items.get()
        self.coordinator.update_items(pick_list.id, [{'pick_list_item_id': line.id, 'picked_qty': Decimal('18')}])

        dn_item.refresh_from_db()
        line.refresh_from_db()
        self.assertEqual(line.picked_qty, Decimal('18'))
        self.assertEqual(dn_item.picked_qty, Decimal('18'))

    def test_update_items_bounds(self):
        delivery_note, pick_list = self.picking_note(self.approved_request({self.widget: 20}))
        dn_item = delivery_note.items.get()

        for quantity in (Decimal('-1'), Decimal('21')):
            with self.subTest(quantity=quantity):
                with self.assertRaises(FulfillmentValidationError):
                    self.coordinator.update_items(
                        pick_list.id, [{'delivery_note_item_id': dn_item.id, 'picked_qty': quantity}]
                    )

    def test_update_items_requires_in_progress(self):
        delivery_note = self.confirmed_note(self.approved_request())
        pick_list = self.coordinator.create(delivery_note_id=delivery_note.id, picker_user_ids=[self.owner.id])
        with self.assertRaises(InvalidTransition):
            self.coordinator.update_items(
                pick_list.id,
                [{'delivery_note_item_id': delivery_note.items.get().id, 'picked_qty': Decimal('1')}],
            )

    def test_done_requires_picked_quantity(self):
        _, pick_list = self.picking_note(self.approved_request())
        with self.assertRaises(FulfillmentValidationError) as ctx:
            self.coordinator.update_status(pick_list.id, PickListStatus.DONE)
        self.assertEqual(ctx.exception.detail['code'], 'nothing_picked')

    def test_pause_and_resume(self):
        delivery_note, pick_list = self.picking_note(self.approved_request())
        self.coordinator.update_status(pick_list.id, PickListStatus.PAUSED)
        pick_list = self.coordinator.update_status(pick_list.id, PickListStatus.IN_PROGRESS)

        delivery_note.refresh_from_db()
        self.assertEqual(pick_list.status, PickListStatus.IN_PROGRESS)
        self.assertEqual(delivery_note.status, DeliveryNoteStatus.PICKING_IN_PROGRESS)

    def test_same_status_is_a_no_op(self):
        _, pick_list = self.picking_note(self.approved_request())
        pick_list = self.coordinator.update_status(pick_list.id, PickListStatus.IN_PROGRESS)
        self.assertEqual(pick_list.status, PickListStatus.IN_PROGRESS)

    def test_done_pick_list_is_terminal(self):
        delivery_note, pick_list = self.picking_note(self.approved_request({self.widget: 5}))
        self.coordinator.update_items(
            pick_list.id, [{'delivery_note_item_id': delivery_note.items.get().id, 'picked_qty': Decimal('5')}]
        )
        self.coordinator.update_status(pick_list.id, PickListStatus.DONE)
        with self.assertRaises(InvalidTransition):
            self.coordinator.update_status(pick_list.id, PickListStatus.IN_PROGRESS)

    def test_unknown_status_rejected(self):
        _, pick_list = self.picking_note(self.approved_request())
        with self.assertRaises(FulfillmentValidationError):
            self.coordinator.update_status(pick_list.id, 'shipped')


class PickListCancellationTests(FulfillmentTestMixin, TestCase):
    def setUp(self):
        self.setUpFulfillment()
        self.coordinator = PickListCoordinator(self.context)

    def test_cancelling_last_open_list_requeues_note(self):
        delivery_note, pick_list = self.picking_note(self.approved_request({self.widget: 20}))
        dn_item = delivery_note.items.get()
        self.coordinator.update_items(
            pick_list.id, [{'delivery_note_item_id': dn_item.id, 'picked_qty': Decimal('7')}]
        )

        self.coordinator.update_status(pick_list.id, PickListStatus.CANCELLED)

        delivery_note.refresh_from_db()
        dn_item.refresh_from_db()
        self.assertEqual(delivery_note.status, DeliveryNoteStatus.QUEUED_FOR_PICKING)
        self.assertEqual(dn_item.picked_qty, Decimal('0'))
        self.assertEqual(dn_item.short_qty, Decimal('0'))

    def test_cancelling_pending_list_keeps_queue(self):
        delivery_note = self.confirmed_note(self.approved_request())
        pick_list = self.coordinator.create(delivery_note_id=delivery_note.id, picker_user_ids=[self.owner.id])

        pick_list = self.coordinator.update_status(pick_list.id, PickListStatus.CANCELLED)

        delivery_note.refresh_from_db()
        self.assertEqual(pick_list.status, PickListStatus.CANCELLED)
        self.assertIsNotNone(pick_list.cancelled_at)
        self.assertEqual(delivery_note.status, DeliveryNoteStatus.QUEUED_FOR_PICKING)
