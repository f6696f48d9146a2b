"""
Fulfillment API Serializers

Read serializers render stock requests, delivery notes and pick lists.
Input serializers validate payload shape only; business rules live in the
services.
"""

from rest_framework import serializers

from inventory.fulfillment_states import PickListStatus, StockRequestPriority
from inventory.models import (
    DeliveryNote,
    DeliveryNoteItem,
    DeliveryNoteSource,
    PickList,
    PickListAssignee,
    PickListItem,
    StockRequest,
    StockRequestItem,
)


QUANTITY = {'max_digits': 14, 'decimal_places': 3}


class StockRequestItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    uom_symbol = serializers.CharField(source='uom.symbol', read_only=True, allow_null=True)
    fulfilled_qty = serializers.DecimalField(source='fulfilled_quantity', read_only=True, **QUANTITY)
    remaining_allocatable_qty = serializers.DecimalField(source='remaining_allocatable', read_only=True, **QUANTITY)

    class Meta:
        model = StockRequestItem
        fields = [
            'id',
            'product',
            'product_name',
            'product_sku',
            'uom',
            'uom_symbol',
            'requested_qty',
            'fulfilled_qty',
            'remaining_allocatable_qty',
            'unit_price',
            'notes',
        ]
        read_only_fields = fields


class StockRequestSerializer(serializers.ModelSerializer):
    items = StockRequestItemSerializer(many=True, read_only=True)
    requesting_warehouse_name = serializers.CharField(source='requesting_warehouse.name', read_only=True)
    fulfilling_warehouse_name = serializers.CharField(source='fulfilling_warehouse.name', read_only=True)
    created_by_name = serializers.SerializerMethodField()

    class Meta:
        model = StockRequest
        fields = [
            'id',
            'business',
            'business_unit',
            'request_code',
            'requesting_warehouse',
            'requesting_warehouse_name',
            'fulfilling_warehouse',
            'fulfilling_warehouse_name',
            'priority',
            'required_by',
            'status',
            'notes',
            'items',
            'submitted_at',
            'submitted_by',
            'approved_at',
            'approved_by',
            'cancelled_at',
            'cancelled_by',
            'completed_at',
            'completed_by',
            'created_by',
            'created_by_name',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_created_by_name(self, obj):
        return obj.created_by.name if obj.created_by else None


class StockRequestItemInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    uom_id = serializers.UUIDField(required=False, allow_null=True)
    requested_qty = serializers.DecimalField(**QUANTITY)
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_requested_qty(self, value):
        if value <= 0:
            raise serializers.ValidationError("Requested quantity must be greater than 0")
        return value


class StockRequestCreateSerializer(serializers.Serializer):
    requesting_warehouse_id = serializers.UUIDField()
    fulfilling_warehouse_id = serializers.UUIDField()
    priority = serializers.ChoiceField(choices=StockRequestPriority.choices, required=False)
    required_by = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    items = StockRequestItemInputSerializer(many=True, allow_empty=False)

    def validate(self, data):
        if data['requesting_warehouse_id'] == data['fulfilling_warehouse_id']:
            raise serializers.ValidationError({
                'fulfilling_warehouse_id': 'Requesting and fulfilling warehouses must be different'
            })
        return data


class StockRequestUpdateSerializer(serializers.Serializer):
    requesting_warehouse_id = serializers.UUIDField(required=False)
    fulfilling_warehouse_id = serializers.UUIDField(required=False)
    priority = serializers.ChoiceField(choices=StockRequestPriority.choices, required=False)
    required_by = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    items = StockRequestItemInputSerializer(many=True, required=False, allow_empty=False)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000)


class DeliveryNoteItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    request_code = serializers.CharField(source='stock_request.request_code', read_only=True)

    class Meta:
        model = DeliveryNoteItem
        fields = [
            'id',
            'stock_request',
            'request_code',
            'stock_request_item',
            'product',
            'product_name',
            'uom',
            'allocated_qty',
            'picked_qty',
            'short_qty',
            'dispatched_qty',
            'received_qty',
        ]
        read_only_fields = fields


class DeliveryNoteSourceSerializer(serializers.ModelSerializer):
    request_code = serializers.CharField(source='stock_request.request_code', read_only=True)

    class Meta:
        model = DeliveryNoteSource
        fields = ['id', 'stock_request', 'request_code', 'created_at']
        read_only_fields = fields


class DeliveryNoteSerializer(serializers.ModelSerializer):
    items = DeliveryNoteItemSerializer(many=True, read_only=True)
    sources = DeliveryNoteSourceSerializer(many=True, read_only=True)
    requesting_warehouse_name = serializers.CharField(source='requesting_warehouse.name', read_only=True)
    fulfilling_warehouse_name = serializers.CharField(source='fulfilling_warehouse.name', read_only=True)

    class Meta:
        model = DeliveryNote
        fields = [
            'id',
            'business',
            'business_unit',
            'dn_no',
            'status',
            'requesting_warehouse',
            'requesting_warehouse_name',
            'fulfilling_warehouse',
            'fulfilling_warehouse_name',
            'sources',
            'items',
            'confirmed_at',
            'confirmed_by',
            'picking_started_at',
            'picking_started_by',
            'picking_completed_at',
            'picking_completed_by',
            'dispatched_at',
            'dispatched_by',
            'dispatch_date',
            'received_at',
            'received_by',
            'received_date',
            'voided_at',
            'voided_by',
            'void_reason',
            'driver_name',
            'driver_signature',
            'notes',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class DeliveryNoteItemInputSerializer(serializers.Serializer):
    stock_request_id = serializers.UUIDField(required=False, allow_null=True)
    stock_request_item_id = serializers.UUIDField()
    product_id = serializers.UUIDField(required=False, allow_null=True)
    uom_id = serializers.UUIDField(required=False, allow_null=True)
    allocated_qty = serializers.DecimalField(**QUANTITY)

    def validate_allocated_qty(self, value):
        if value <= 0:
            raise serializers.ValidationError("Allocated quantity must be greater than 0")
        return value


class DeliveryNoteCreateSerializer(serializers.Serializer):
    stock_request_ids = serializers.ListField(child=serializers.UUIDField(), required=False)
    items = DeliveryNoteItemInputSerializer(many=True, allow_empty=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class PickedQuantitySerializer(serializers.Serializer):
    delivery_note_item_id = serializers.UUIDField()
    picked_qty = serializers.DecimalField(**QUANTITY)


class DispatchReadySerializer(serializers.Serializer):
    items = PickedQuantitySerializer(many=True, required=False)


class DispatchQuantitySerializer(serializers.Serializer):
    delivery_note_item_id = serializers.UUIDField()
    dispatch_qty = serializers.DecimalField(**QUANTITY)

    def validate_dispatch_qty(self, value):
        if value < 0:
            raise serializers.ValidationError("Dispatch quantity cannot be negative")
        return value


class DispatchSerializer(serializers.Serializer):
    driver_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    driver_signature = serializers.CharField(required=False, allow_blank=True)
    dispatch_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    items = DispatchQuantitySerializer(many=True, required=False)


class ReceiptQuantitySerializer(serializers.Serializer):
    delivery_note_item_id = serializers.UUIDField()
    received_qty = serializers.DecimalField(**QUANTITY)
    location_id = serializers.UUIDField(required=False, allow_null=True)

    def validate_received_qty(self, value):
        if value < 0:
            raise serializers.ValidationError("Received quantity cannot be negative")
        return value


class ReceiptSerializer(serializers.Serializer):
    received_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    items = ReceiptQuantitySerializer(many=True, required=False)


class PickListItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='delivery_note_item.product.name', read_only=True)

    class Meta:
        model = PickListItem
        fields = ['id', 'delivery_note_item', 'product_name', 'allocated_qty', 'picked_qty']
        read_only_fields = fields


class PickListAssigneeSerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source='user.name', read_only=True)

    class Meta:
        model = PickListAssignee
        fields = ['user', 'user_name', 'assigned_by', 'assigned_at']
        read_only_fields = fields


class PickListSerializer(serializers.ModelSerializer):
    items = PickListItemSerializer(many=True, read_only=True)
    assignees = PickListAssigneeSerializer(many=True, read_only=True)
    dn_no = serializers.CharField(source='delivery_note.dn_no', read_only=True)

    class Meta:
        model = PickList
        fields = [
            'id',
            'business',
            'business_unit',
            'pick_list_no',
            'delivery_note',
            'dn_no',
            'status',
            'notes',
            'assignees',
            'items',
            'started_at',
            'completed_at',
            'cancelled_at',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class PickListCreateSerializer(serializers.Serializer):
    delivery_note_id = serializers.UUIDField()
    picker_user_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class PickListStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=PickListStatus.choices)


class PickListProgressSerializer(serializers.Serializer):
    pick_list_item_id = serializers.UUIDField(required=False)
    delivery_note_item_id = serializers.UUIDField(required=False)
    picked_qty = serializers.DecimalField(**QUANTITY)

    def validate(self, data):
        if not data.get('pick_list_item_id') and not data.get('delivery_note_item_id'):
            raise serializers.ValidationError('Provide pick_list_item_id or delivery_note_item_id')
        return data


class PickListItemsSerializer(serializers.Serializer):
    items = PickListProgressSerializer(many=True, allow_empty=False)
