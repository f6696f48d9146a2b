from django.test import TestCase, override_settings

from accounts.models import AuditLog
from inventory.dispatch_services import DispatchPoster, ReceiptRecorder
from inventory.fulfillment_states import StockRequestStatus
from inventory.tasks import complete_fulfilled_stock_requests
from tests.utils import FulfillmentTestMixin


class CompleteFulfilledStockRequestsTests(FulfillmentTestMixin, TestCase):
    def setUp(self):
        self.setUpFulfillment()

    def received_request(self, quantities, picked=None):
        stock_request = self.approved_request(quantities)
        delivery_note = self.ready_note(stock_request, picked=picked)
        DispatchPoster(self.context).dispatch(delivery_note.id)
        ReceiptRecorder(self.context).receive(delivery_note.id)
        return stock_request

    def test_completes_fully_received_requests(self):
        done = self.received_request({self.widget: 10})
        short = self.received_request({self.gadget: 10}, picked={self.gadget: 8})
        untouched = self.approved_request({self.widget: 5})

        result = complete_fulfilled_stock_requests()

        self.assertEqual(result['status'], 'success')
        self.assertEqual(result['completed'], [str(done.id)])
        self.assertEqual(result['failed'], [])
        for stock_request, expected in (
            (done, StockRequestStatus.COMPLETED),
            (short, StockRequestStatus.APPROVED),
            (untouched, StockRequestStatus.APPROVED),
        ):
            stock_request.refresh_from_db()
            self.assertEqual(stock_request.status, expected)

        done.refresh_from_db()
        self.assertIsNone(done.completed_by)
        log = AuditLog.objects.get(object_id=done.id, action='TRANSITION', changes__to_status='completed')
        self.assertIsNone(log.user)

    def test_restricted_to_one_business(self):
        self.received_request({self.widget: 10})
        result = complete_fulfilled_stock_requests(business_id='00000000-0000-0000-0000-000000000000')
        self.assertEqual(result['completed'], [])

    @override_settings(FULFILLMENT_AUTO_COMPLETE_ENABLED=False)
    def test_disabled(self):
        stock_request = self.received_request({self.widget: 10})

        result = complete_fulfilled_stock_requests()

        self.assertEqual(result, {'status': 'disabled', 'completed': []})
        stock_request.refresh_from_db()
        self.assertEqual(stock_request.status, StockRequestStatus.APPROVED)
