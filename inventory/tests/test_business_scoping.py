from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import BusinessUnit
from inventory.delivery_note_services import DeliveryNoteAssembler
from inventory.dispatch_services import DispatchPoster
from inventory.fulfillment_exceptions import FulfillmentNotFound, FulfillmentValidationError
from inventory.fulfillment_projection import FulfillmentStatusProjector
from inventory.pick_list_services import PickListCoordinator
from inventory.stock_request_services import StockRequestManager
from tests.utils import FulfillmentTestMixin, context_for, create_business, create_user


class BusinessScopingTests(FulfillmentTestMixin, TestCase):
    def setUp(self):
        self.setUpFulfillment()
        self.outsider = create_user(name='Outsider')
        self.other_business = create_business(self.outsider)
        self.outsider_context = context_for(self.outsider)

    def test_foreign_stock_request_behaves_as_missing(self):
        stock_request = self.draft_request()
        manager = StockRequestManager(self.outsider_context)

        for call in (
            lambda: manager.get(stock_request.id),
            lambda: manager.submit(stock_request.id),
            lambda: manager.cancel(stock_request.id, 'Not mine'),
            lambda: FulfillmentStatusProjector(self.outsider_context).project(stock_request.id),
        ):
            with self.assertRaises(FulfillmentNotFound):
                call()
        self.assertFalse(manager.queryset().exists())

    def test_foreign_delivery_note_and_pick_list(self):
        delivery_note, pick_list = self.picking_note(self.approved_request())

        with self.assertRaises(FulfillmentNotFound):
            DeliveryNoteAssembler(self.outsider_context).void(delivery_note.id, 'Not mine')
        with self.assertRaises(FulfillmentNotFound):
            DispatchPoster(self.outsider_context).dispatch(delivery_note.id)
        with self.assertRaises(FulfillmentNotFound):
            PickListCoordinator(self.outsider_context).update_status(pick_list.id, 'cancelled')

    def test_foreign_warehouses_rejected(self):
        with self.assertRaises(FulfillmentValidationError):
            StockRequestManager(self.outsider_context).create(
                requesting_warehouse_id=self.branch.id,
                fulfilling_warehouse_id=self.main.id,
                items=[{'product_id': self.widget.id, 'requested_qty': Decimal('1')}],
            )

    def test_malformed_id_is_not_found(self):
        with self.assertRaises(FulfillmentNotFound):
            StockRequestManager(self.context).get('not-a-uuid')

    def test_api_hides_foreign_records(self):
        stock_request = self.draft_request()
        client = APIClient()
        client.force_authenticate(user=self.outsider)

        response = client.get('/inventory/api/stock-requests/')
        self.assertEqual(response.data['count'], 0)

        response = client.get(f'/inventory/api/stock-requests/{stock_request.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = client.post(f'/inventory/api/stock-requests/{stock_request.id}/submit/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class BusinessUnitScopingTests(FulfillmentTestMixin, TestCase):
    def setUp(self):
        self.setUpFulfillment()
        self.accra = BusinessUnit.objects.create(business=self.business, name='Accra', code='ACC')
        self.kumasi = BusinessUnit.objects.create(business=self.business, name='Kumasi', code='KSI')

    def test_unit_context_sees_own_and_shared_rows(self):
        accra_context = context_for(self.owner, business_unit=self.accra)
        kumasi_context = context_for(self.owner, business_unit=self.kumasi)

        accra_request = self.draft_request(context=accra_context)
        shared_request = self.draft_request()

        self.assertEqual(accra_request.business_unit, self.accra)
        self.assertIsNone(shared_request.business_unit)

        kumasi_manager = StockRequestManager(kumasi_context)
        with self.assertRaises(FulfillmentNotFound):
            kumasi_manager.get(accra_request.id)
        self.assertEqual(list(kumasi_manager.queryset()), [shared_request])

        self.assertEqual(StockRequestManager(self.context).queryset().count(), 2)

    def test_header_selects_business_unit(self):
        accra_request = self.draft_request(context=context_for(self.owner, business_unit=self.accra))
        client = APIClient()
        client.force_authenticate(user=self.owner)

        response = client.get(
            f'/inventory/api/stock-requests/{accra_request.id}/',
            HTTP_X_BUSINESS_UNIT=str(self.kumasi.id),
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = client.get(
            f'/inventory/api/stock-requests/{accra_request.id}/',
            HTTP_X_BUSINESS_UNIT=str(self.accra.id),
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
