"""
Fulfillment Filters for list endpoints
"""
from django_filters import rest_framework as filters
from django.db.models import Q

from inventory.fulfillment_states import (
    DeliveryNoteStatus,
    PickListStatus,
    StockRequestPriority,
    StockRequestStatus,
)
from inventory.models import DeliveryNote, PickList, StockRequest


class StockRequestFilter(filters.FilterSet):
    status = filters.MultipleChoiceFilter(choices=StockRequestStatus.choices, conjoined=False)
    priority = filters.MultipleChoiceFilter(choices=StockRequestPriority.choices, conjoined=False)
    requesting_warehouse = filters.UUIDFilter(field_name='requesting_warehouse_id')
    fulfilling_warehouse = filters.UUIDFilter(field_name='fulfilling_warehouse_id')
    date_from = filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    required_by_before = filters.DateFilter(field_name='required_by', lookup_expr='lte')
    search = filters.CharFilter(method='filter_search')

    class Meta:
        model = StockRequest
        fields = ['status', 'priority', 'requesting_warehouse', 'fulfilling_warehouse']

    def filter_search(self, queryset, name, value):
        return queryset.filter(Q(request_code__icontains=value) | Q(notes__icontains=value))


class DeliveryNoteFilter(filters.FilterSet):
    status = filters.MultipleChoiceFilter(choices=DeliveryNoteStatus.choices, conjoined=False)
    requesting_warehouse = filters.UUIDFilter(field_name='requesting_warehouse_id')
    fulfilling_warehouse = filters.UUIDFilter(field_name='fulfilling_warehouse_id')
    stock_request = filters.UUIDFilter(field_name='sources__stock_request_id', distinct=True)
    date_from = filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    search = filters.CharFilter(method='filter_search')

    class Meta:
        model = DeliveryNote
        fields = ['status', 'requesting_warehouse', 'fulfilling_warehouse', 'stock_request']

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(dn_no__icontains=value) | Q(driver_name__icontains=value)
        )


class PickListFilter(filters.FilterSet):
    status = filters.MultipleChoiceFilter(choices=PickListStatus.choices, conjoined=False)
    delivery_note = filters.UUIDFilter(field_name='delivery_note_id')
    assignee = filters.UUIDFilter(field_name='assignees__user_id', distinct=True)
    search = filters.CharFilter(method='filter_search')

    class Meta:
        model = PickList
        fields = ['status', 'delivery_note', 'assignee']

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(pick_list_no__icontains=value) | Q(delivery_note__dn_no__icontains=value)
        )
