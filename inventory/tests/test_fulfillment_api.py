from decimal import Decimal

from rest_framework import status
from rest_framework.test import APITestCase

from accounts.models import BusinessMembership
from inventory.fulfillment_states import DeliveryNoteStatus
from inventory.models import WarehouseStock
from tests.utils import FulfillmentTestMixin, add_member, create_user


API = '/inventory/api'


class FulfillmentAPITestCase(FulfillmentTestMixin, APITestCase):
    def setUp(self):
        self.setUpFulfillment()
        self.client.force_authenticate(user=self.owner)

    def post(self, path, data=None):
        return self.client.post(f"{API}/{path}", data or {}, format='json')

    def patch(self, path, data):
        return self.client.patch(f"{API}/{path}", data, format='json')

    def get(self, path, **params):
        return self.client.get(f"{API}/{path}", params)


class StockRequestAPITests(FulfillmentAPITestCase):
    def create_payload(self, quantity='25'):
        return {
            'requesting_warehouse_id': str(self.branch.id),
            'fulfilling_warehouse_id': str(self.main.id),
            'priority': 'high',
            'items': [{'product_id': str(self.widget.id), 'requested_qty': quantity}],
        }

    def test_create_submit_approve(self):
        response = self.post('stock-requests/', self.create_payload())
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'draft')
        self.assertEqual(response.data['priority'], 'high')
        self.assertEqual(len(response.data['items']), 1)
        pk = response.data['id']

        self.assertEqual(self.post(f'stock-requests/{pk}/submit/').data['status'], 'submitted')
        response = self.post(f'stock-requests/{pk}/approve/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'approved')

    def test_list_is_paginated_and_filterable(self):
        self.draft_request()
        self.approved_request()

        response = self.get('stock-requests/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)

        response = self.get('stock-requests/', status='approved')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['status'], 'approved')

    def test_same_warehouse_rejected_by_serializer(self):
        payload = self.create_payload()
        payload['requesting_warehouse_id'] = str(self.main.id)
        response = self.post('stock-requests/', payload)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('fulfilling_warehouse_id', response.data)

    def test_invalid_transition_reports_current_status(self):
        stock_request = self.draft_request()
        response = self.post(f'stock-requests/{stock_request.id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_transition')
        self.assertEqual(response.data['current_status'], 'draft')

    def test_edit_and_delete_draft(self):
        stock_request = self.draft_request()
        response = self.patch(f'stock-requests/{stock_request.id}/', {'notes': 'For the weekend'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['notes'], 'For the weekend')

        response = self.client.delete(f"{API}/stock-requests/{stock_request.id}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.get(f'stock-requests/{stock_request.id}/').status_code, status.HTTP_404_NOT_FOUND)

    def test_cancel_returns_warnings(self):
        stock_request = self.approved_request()
        response = self.post(f'stock-requests/{stock_request.id}/cancel/', {'reason': 'Branch closed'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')
        self.assertEqual(response.data['warnings'], [])

    def test_reject_requires_reason(self):
        stock_request = self.draft_request()
        self.post(f'stock-requests/{stock_request.id}/submit/')
        response = self.post(f'stock-requests/{stock_request.id}/reject/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('reason', response.data)

    def test_status_endpoint(self):
        stock_request = self.approved_request()
        self.draft_note(stock_request)
        response = self.get(f'stock-requests/{stock_request.id}/status/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['stored_status'], 'approved')
        self.assertEqual(response.data['derived_status'], 'awaiting_confirmation')


class FulfillmentPermissionAPITests(FulfillmentAPITestCase):
    def setUp(self):
        super().setUp()
        self.staff = create_user(name='Staff')
        add_member(self.business, self.staff, role=BusinessMembership.STAFF)

    def test_staff_can_create_but_not_approve(self):
        stock_request = self.draft_request()
        self.client.force_authenticate(user=self.staff)

        self.assertEqual(self.post(f'stock-requests/{stock_request.id}/submit/').status_code, status.HTTP_200_OK)
        response = self.post(f'stock-requests/{stock_request.id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_cannot_void_or_dispatch(self):
        delivery_note = self.ready_note(self.approved_request())
        self.client.force_authenticate(user=self.staff)

        self.assertEqual(
            self.post(f'delivery-notes/{delivery_note.id}/void/', {'reason': 'x'}).status_code,
            status.HTTP_403_FORBIDDEN,
        )
        self.assertEqual(
            self.post(f'delivery-notes/{delivery_note.id}/dispatch/').status_code,
            status.HTTP_403_FORBIDDEN,
        )

    def test_manager_can_approve(self):
        manager = create_user(name='Manager')
        add_member(self.business, manager, role=BusinessMembership.MANAGER)
        stock_request = self.draft_request()
        self.post(f'stock-requests/{stock_request.id}/submit/')

        self.client.force_authenticate(user=manager)
        self.assertEqual(self.post(f'stock-requests/{stock_request.id}/approve/').status_code, status.HTTP_200_OK)

    def test_anonymous_rejected(self):
        self.client.force_authenticate(user=None)
        response = self.get('stock-requests/')
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))


class DeliveryNoteAPITests(FulfillmentAPITestCase):
    def test_full_pipeline(self):
        stock_request = self.approved_request({self.widget: 100})
        item = stock_request.items.get()

        response = self.post('delivery-notes/', {
            'stock_request_ids': [str(stock_request.id)],
            'items': [{'stock_request_item_id': str(item.id), 'allocated_qty': '100'}],
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        dn_id = response.data['id']
        dn_item_id = response.data['items'][0]['id']
        self.assertEqual(response.data['sources'][0]['request_code'], stock_request.request_code)

        self.assertEqual(self.post(f'delivery-notes/{dn_id}/confirm/').data['status'], 'confirmed')

        response = self.post('pick-lists/', {'delivery_note_id': dn_id, 'picker_user_ids': [str(self.owner.id)]})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        pl_id = response.data['id']

        self.assertEqual(self.patch(f'pick-lists/{pl_id}/status/', {'status': 'in_progress'}).data['status'], 'in_progress')
        response = self.patch(f'pick-lists/{pl_id}/items/', {
            'items': [{'delivery_note_item_id': dn_item_id, 'picked_qty': '90'}],
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['items'][0]['picked_qty']), Decimal('90'))

        response = self.post(f'delivery-notes/{dn_id}/dispatch-ready/')
        self.assertEqual(response.data['status'], DeliveryNoteStatus.DISPATCH_READY)
        self.assertEqual(Decimal(response.data['items'][0]['short_qty']), Decimal('10'))

        response = self.post(f'delivery-notes/{dn_id}/dispatch/', {
            'driver_name': 'Ama Owusu',
            'dispatch_date': '2026-03-02',
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'dispatched')
        self.assertEqual(response.data['driver_name'], 'Ama Owusu')

        response = self.post(f'delivery-notes/{dn_id}/receive/', {'received_date': '2026-03-03'})
        self.assertEqual(response.data['status'], 'received')

        stock = WarehouseStock.objects.get(warehouse=self.branch, product=self.widget)
        self.assertEqual(stock.quantity, Decimal('90'))

        response = self.get(f'stock-requests/{stock_request.id}/status/')
        self.assertEqual(response.data['derived_status'], 'received')

    def test_nothing_to_dispatch_body(self):
        delivery_note = self.ready_note(self.approved_request({self.widget: 5}))
        self.post(f'delivery-notes/{delivery_note.id}/dispatch/')

        response = self.post(f'delivery-notes/{delivery_note.id}/dispatch/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'nothing_to_dispatch')

    def test_negative_dispatch_quantity_rejected(self):
        delivery_note = self.ready_note(self.approved_request({self.widget: 5}))
        response = self.post(f'delivery-notes/{delivery_note.id}/dispatch/', {
            'items': [{'delivery_note_item_id': str(delivery_note.items.get().id), 'dispatch_qty': '-1'}],
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_posting_failure_is_reported(self):
        delivery_note = self.ready_note(self.approved_request({self.widget: 50}))
        WarehouseStock.objects.filter(warehouse=self.main, product=self.widget).update(quantity=Decimal('5'))

        response = self.post(f'delivery-notes/{delivery_note.id}/dispatch/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('insufficient stock', response.data['detail'])
        delivery_note.refresh_from_db()
        self.assertEqual(delivery_note.status, DeliveryNoteStatus.DISPATCH_READY)

    def test_void_and_status(self):
        delivery_note = self.confirmed_note(self.approved_request())
        response = self.post(f'delivery-notes/{delivery_note.id}/void/', {'reason': 'Duplicate'})
        self.assertEqual(response.data['status'], 'voided')
        self.assertEqual(response.data['void_reason'], 'Duplicate')

        response = self.get(f'delivery-notes/{delivery_note.id}/status/')
        self.assertEqual(response.data['stage'], 'voided')
        self.assertFalse(response.data['voidable'])

    def test_queue_picking_endpoint(self):
        delivery_note = self.confirmed_note(self.approved_request())
        response = self.post(f'delivery-notes/{delivery_note.id}/queue-picking/')
        self.assertEqual(response.data['status'], 'queued_for_picking')

    def test_list_filters_by_status(self):
        self.draft_note(self.approved_request())
        self.confirmed_note(self.approved_request())
        response = self.get('delivery-notes/', status='confirmed')
        self.assertEqual(response.data['count'], 1)


class PickListAPITests(FulfillmentAPITestCase):
    def test_second_open_pick_list_conflicts(self):
        delivery_note = self.confirmed_note(self.approved_request())
        payload = {'delivery_note_id': str(delivery_note.id), 'picker_user_ids': [str(self.owner.id)]}

        self.assertEqual(self.post('pick-lists/', payload).status_code, status.HTTP_201_CREATED)
        response = self.post('pick-lists/', payload)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_unknown_status_rejected(self):
        _, pick_list = self.picking_note(self.approved_request())
        response = self.patch(f'pick-lists/{pick_list.id}/status/', {'status': 'shipped'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_done_without_progress(self):
        _, pick_list = self.picking_note(self.approved_request())
        response = self.patch(f'pick-lists/{pick_list.id}/status/', {'status': 'done'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'nothing_picked')

    def test_items_need_a_line_reference(self):
        _, pick_list = self.picking_note(self.approved_request())
        response = self.patch(f'pick-lists/{pick_list.id}/items/', {'items': [{'picked_qty': '1'}]})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
