"""
Celery tasks for the fulfillment pipeline
"""

from celery import shared_task
from django.conf import settings
import logging

from rest_framework.exceptions import APIException

logger = logging.getLogger(__name__)


@shared_task(name='inventory.complete_fulfilled_stock_requests')
def complete_fulfilled_stock_requests(business_id: str = None):
    """
    Complete approved stock requests whose items have all been received.

    Runs as a system actor, one request context per business.

    Args:
        business_id: Optional UUID to restrict the sweep to one business

    Returns:
        dict: Completion results
    """
    from accounts.business_context import RequestContext
    from inventory.fulfillment_states import StockRequestStatus
    from inventory.models import StockRequest
    from inventory.stock_request_services import StockRequestManager, outstanding_items

    if not getattr(settings, 'FULFILLMENT_AUTO_COMPLETE_ENABLED', True):
        logger.info("Stock request auto-completion is disabled")
        return {'status': 'disabled', 'completed': []}

    candidates = StockRequest.objects.alive().filter(status=StockRequestStatus.APPROVED)
    if business_id:
        candidates = candidates.filter(business_id=business_id)

    completed = []
    failed = []
    for stock_request in candidates.order_by('business_id', 'created_at'):
        if outstanding_items(stock_request):
            continue
        context = RequestContext(
            company_id=stock_request.business_id,
            business_unit_id=None,
            user_id=None,
        )
        try:
            StockRequestManager(context).complete(stock_request.id)
        except APIException as exc:
            logger.warning(f"Could not complete stock request {stock_request.request_code}: {exc.detail}")
            failed.append(str(stock_request.id))
            continue
        completed.append(str(stock_request.id))

    logger.info(f"Auto-completed {len(completed)} stock request(s), {len(failed)} skipped")
    return {
        'status': 'success',
        'completed': completed,
        'failed': failed,
    }
