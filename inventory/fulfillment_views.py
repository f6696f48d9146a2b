"""
Fulfillment API Views

Stock requests, delivery notes and pick lists. Views resolve the request
context, validate payload shape and delegate every state change to the
fulfillment services.
"""

from django.db.models import Prefetch
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.business_context import resolve_request_context
from accounts.permissions import FulfillmentPermission
from inventory.delivery_note_services import DeliveryNoteAssembler
from inventory.dispatch_services import DispatchPoster, ReceiptRecorder
from inventory.fulfillment_filters import DeliveryNoteFilter, PickListFilter, StockRequestFilter
from inventory.fulfillment_projection import FulfillmentStatusProjector
from inventory.fulfillment_serializers import (
    DeliveryNoteCreateSerializer,
    DeliveryNoteSerializer,
    DispatchReadySerializer,
    DispatchSerializer,
    PickListCreateSerializer,
    PickListItemsSerializer,
    PickListSerializer,
    PickListStatusSerializer,
    ReasonSerializer,
    ReceiptSerializer,
    StockRequestCreateSerializer,
    StockRequestSerializer,
    StockRequestUpdateSerializer,
)
from inventory.models import (
    DeliveryNoteItem,
    PickListItem,
    StockRequestItem,
)
from inventory.pick_list_services import PickListCoordinator
from inventory.stock_request_services import StockRequestManager


class FulfillmentViewSetMixin:
    """Shared wiring: permission gate, request context, service factory."""

    permission_classes = [FulfillmentPermission]
    filter_backends = [DjangoFilterBackend]
    service_class = None

    @property
    def fulfillment_context(self):
        return resolve_request_context(self.request)

    def get_service(self, service_class=None, **kwargs):
        return (service_class or self.service_class)(self.fulfillment_context, **kwargs)

    def _validated(self, serializer_class, partial=False):
        serializer = serializer_class(data=self.request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    def _render(self, instance, status_code=status.HTTP_200_OK, **extra):
        instance = self.get_queryset().get(pk=instance.pk)
        data = self.get_serializer(instance).data
        if extra:
            data = {**data, **extra}
        return Response(data, status=status_code)


class StockRequestViewSet(FulfillmentViewSetMixin,
                          mixins.ListModelMixin,
                          mixins.RetrieveModelMixin,
                          viewsets.GenericViewSet):
    """
    Stock requests.

    POST   /inventory/api/stock-requests/                create draft
    PATCH  /inventory/api/stock-requests/{id}/           edit draft
    DELETE /inventory/api/stock-requests/{id}/           delete draft
    POST   /inventory/api/stock-requests/{id}/submit/    draft -> submitted
    POST   /inventory/api/stock-requests/{id}/approve/   submitted -> approved
    POST   /inventory/api/stock-requests/{id}/reject/    submitted -> cancelled
    POST   /inventory/api/stock-requests/{id}/cancel/    -> cancelled
    POST   /inventory/api/stock-requests/{id}/complete/  approved -> completed
    GET    /inventory/api/stock-requests/{id}/status/    derived fulfillment status
    """

    serializer_class = StockRequestSerializer
    filterset_class = StockRequestFilter
    service_class = StockRequestManager
    permission_resource = 'stock_requests'
    permission_actions = {
        'approve': 'approve',
        'reject': 'approve',
        'complete': 'approve',
        'fulfillment_status': 'view',
    }

    def get_queryset(self):
        return self.get_service().queryset().prefetch_related(
            Prefetch('items', queryset=StockRequestItem.objects.select_related('product', 'uom'))
        )

    def create(self, request, *args, **kwargs):
        data = self._validated(StockRequestCreateSerializer)
        stock_request = self.get_service().create(
            requesting_warehouse_id=data['requesting_warehouse_id'],
            fulfilling_warehouse_id=data['fulfilling_warehouse_id'],
            items=data['items'],
            priority=data.get('priority'),
            required_by=data.get('required_by'),
            notes=data.get('notes', ''),
        )
        return self._render(stock_request, status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        data = dict(self._validated(StockRequestUpdateSerializer, partial=True))
        items = data.pop('items', None)
        stock_request = self.get_service().update_draft(kwargs['pk'], data, items=items)
        return self._render(stock_request)

    def destroy(self, request, *args, **kwargs):
        self.get_service().delete_draft(kwargs['pk'])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        return self._render(self.get_service().submit(pk))

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        return self._render(self.get_service().approve(pk))

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        data = self._validated(ReasonSerializer)
        return self._render(self.get_service().reject(pk, data['reason']))

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        data = self._validated(ReasonSerializer)
        stock_request, warnings = self.get_service().cancel(pk, data['reason'])
        return self._render(stock_request, warnings=warnings)

    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        return self._render(self.get_service().complete(pk))

    @action(detail=True, methods=['get'], url_path='status')
    def fulfillment_status(self, request, pk=None):
        projection = self.get_service(FulfillmentStatusProjector).project(pk)
        return Response(projection.as_dict())


class DeliveryNoteViewSet(FulfillmentViewSetMixin,
                          mixins.ListModelMixin,
                          mixins.RetrieveModelMixin,
                          viewsets.GenericViewSet):
    """
    Delivery notes.

    POST /inventory/api/delivery-notes/                       assemble from approved stock requests
    POST /inventory/api/delivery-notes/{id}/confirm/          draft -> confirmed
    POST /inventory/api/delivery-notes/{id}/queue-picking/    confirmed -> queued_for_picking
    POST /inventory/api/delivery-notes/{id}/dispatch-ready/   picking_in_progress -> dispatch_ready
    POST /inventory/api/delivery-notes/{id}/dispatch/         post dispatch
    POST /inventory/api/delivery-notes/{id}/receive/          post receipt
    POST /inventory/api/delivery-notes/{id}/void/             void
    GET  /inventory/api/delivery-notes/{id}/status/           stage and pick lists
    """

    serializer_class = DeliveryNoteSerializer
    filterset_class = DeliveryNoteFilter
    service_class = DeliveryNoteAssembler
    permission_resource = 'delivery_notes'
    permission_actions = {
        'dispatch_goods': 'approve',
        'void': 'approve',
        'delivery_note_status': 'view',
    }

    def get_queryset(self):
        return self.get_service().queryset().prefetch_related(
            'sources__stock_request',
            Prefetch(
                'items',
                queryset=DeliveryNoteItem.objects.select_related('product', 'stock_request'),
            ),
        )

    def create(self, request, *args, **kwargs):
        data = self._validated(DeliveryNoteCreateSerializer)
        delivery_note = self.get_service().create(
            stock_request_ids=data.get('stock_request_ids'),
            items=data['items'],
            notes=data.get('notes', ''),
        )
        return self._render(delivery_note, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def confirm(self, request, pk=None):
        return self._render(self.get_service().confirm(pk))

    @action(detail=True, methods=['post'], url_path='queue-picking')
    def queue_picking(self, request, pk=None):
        return self._render(self.get_service().queue_picking(pk))

    @action(detail=True, methods=['post'], url_path='dispatch-ready')
    def dispatch_ready(self, request, pk=None):
        data = self._validated(DispatchReadySerializer)
        return self._render(self.get_service().mark_dispatch_ready(pk, data.get('items')))

    @action(detail=True, methods=['post'], url_path='dispatch')
    def dispatch_goods(self, request, pk=None):
        data = self._validated(DispatchSerializer)
        delivery_note = self.get_service(DispatchPoster).dispatch(
            pk,
            driver_name=data.get('driver_name', ''),
            driver_signature=data.get('driver_signature', ''),
            dispatch_date=data.get('dispatch_date'),
            notes=data.get('notes', ''),
            items=data.get('items'),
        )
        return self._render(delivery_note)

    @action(detail=True, methods=['post'])
    def receive(self, request, pk=None):
        data = self._validated(ReceiptSerializer)
        delivery_note = self.get_service(ReceiptRecorder).receive(
            pk,
            received_date=data.get('received_date'),
            notes=data.get('notes', ''),
            items=data.get('items'),
        )
        return self._render(delivery_note)

    @action(detail=True, methods=['post'])
    def void(self, request, pk=None):
        data = self._validated(ReasonSerializer)
        return self._render(self.get_service().void(pk, data['reason']))

    @action(detail=True, methods=['get'], url_path='status')
    def delivery_note_status(self, request, pk=None):
        view = self.get_service(FulfillmentStatusProjector).delivery_note_status(pk)
        return Response(view.as_dict())


class PickListViewSet(FulfillmentViewSetMixin,
                      mixins.ListModelMixin,
                      mixins.RetrieveModelMixin,
                      viewsets.GenericViewSet):
    """
    Pick lists.

    POST  /inventory/api/pick-lists/              create for a confirmed or queued delivery note
    PATCH /inventory/api/pick-lists/{id}/status/  move the pick list
    PATCH /inventory/api/pick-lists/{id}/items/   record picked quantities
    """

    serializer_class = PickListSerializer
    filterset_class = PickListFilter
    service_class = PickListCoordinator
    permission_resource = 'pick_lists'

    def get_queryset(self):
        return self.get_service().queryset().prefetch_related(
            'assignees__user',
            Prefetch(
                'items',
                queryset=PickListItem.objects.select_related('delivery_note_item__product'),
            ),
        )

    def create(self, request, *args, **kwargs):
        data = self._validated(PickListCreateSerializer)
        pick_list = self.get_service().create(
            delivery_note_id=data['delivery_note_id'],
            picker_user_ids=data['picker_user_ids'],
            notes=data.get('notes', ''),
        )
        return self._render(pick_list, status.HTTP_201_CREATED)

    @action(detail=True, methods=['patch'], url_path='status')
    def update_pick_list_status(self, request, pk=None):
        data = self._validated(PickListStatusSerializer)
        return self._render(self.get_service().update_status(pk, data['status']))

    @action(detail=True, methods=['patch'], url_path='items')
    def update_pick_list_items(self, request, pk=None):
        data = self._validated(PickListItemsSerializer)
        return self._render(self.get_service().update_items(pk, data['items']))
