from django.contrib import admin
from .models import (
    Warehouse, StorageLocation, UnitOfMeasure, Product, WarehouseStock, LocationStock,
    StockMovement, StockRequest, StockRequestItem, DeliveryNote, DeliveryNoteSource,
    DeliveryNoteItem, PickList, PickListAssignee, PickListItem,
)


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'business', 'business_unit', 'manager', 'is_active']
    search_fields = ['name', 'code', 'location']
    list_filter = ['business', 'is_active', 'created_at']
    readonly_fields = ['id', 'created_at', 'updated_at']
    ordering = ['name']


@admin.register(StorageLocation)
class StorageLocationAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'warehouse', 'is_default', 'is_active']
    search_fields = ['code', 'name', 'warehouse__name']
    list_filter = ['is_default', 'is_active']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(UnitOfMeasure)
class UnitOfMeasureAdmin(admin.ModelAdmin):
    list_display = ['name', 'symbol', 'business']
    search_fields = ['name', 'symbol']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'sku', 'business', 'default_uom', 'is_active']
    search_fields = ['name', 'sku', 'barcode', 'description']
    list_filter = ['is_active', 'created_at']
    readonly_fields = ['id', 'created_at', 'updated_at']
    ordering = ['name']

    fieldsets = (
        ('Basic Information', {
            'fields': ('id', 'business', 'name', 'sku', 'barcode', 'description', 'default_uom', 'is_active')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(WarehouseStock)
class WarehouseStockAdmin(admin.ModelAdmin):
    list_display = ['product', 'warehouse', 'quantity', 'updated_at']
    search_fields = ['product__name', 'product__sku', 'warehouse__name']
    list_filter = ['warehouse']
    readonly_fields = ['id', 'updated_at']


@admin.register(LocationStock)
class LocationStockAdmin(admin.ModelAdmin):
    list_display = ['product', 'location', 'quantity', 'updated_at']
    search_fields = ['product__name', 'location__code']
    readonly_fields = ['id', 'updated_at']


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = [
        'reference_number', 'movement_type', 'product', 'warehouse', 'quantity',
        'qty_before', 'qty_after', 'created_by', 'created_at'
    ]
    search_fields = ['reference_number', 'product__name', 'product__sku']
    list_filter = ['movement_type', 'warehouse', 'created_at']
    readonly_fields = [field.name for field in StockMovement._meta.fields]
    ordering = ['-created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


class StockRequestItemInline(admin.TabularInline):
    model = StockRequestItem
    extra = 0
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(StockRequest)
class StockRequestAdmin(admin.ModelAdmin):
    list_display = [
        'request_code', 'status', 'priority', 'requesting_warehouse',
        'fulfilling_warehouse', 'required_by', 'created_by', 'created_at'
    ]
    search_fields = ['request_code', 'notes']
    list_filter = ['status', 'priority', 'created_at']
    readonly_fields = [
        'id', 'request_code', 'status', 'submitted_at', 'submitted_by', 'approved_at', 'approved_by',
        'cancelled_at', 'cancelled_by', 'completed_at', 'completed_by', 'created_at', 'updated_at'
    ]
    inlines = [StockRequestItemInline]
    ordering = ['-created_at']


class DeliveryNoteSourceInline(admin.TabularInline):
    model = DeliveryNoteSource
    extra = 0
    readonly_fields = ['stock_request', 'created_at']
    can_delete = False


class DeliveryNoteItemInline(admin.TabularInline):
    model = DeliveryNoteItem
    extra = 0
    readonly_fields = [
        'stock_request', 'stock_request_item', 'product', 'allocated_qty',
        'picked_qty', 'short_qty', 'dispatched_qty', 'received_qty'
    ]
    can_delete = False


@admin.register(DeliveryNote)
class DeliveryNoteAdmin(admin.ModelAdmin):
    list_display = [
        'dn_no', 'status', 'fulfilling_warehouse', 'requesting_warehouse',
        'dispatch_date', 'received_date', 'created_at'
    ]
    search_fields = ['dn_no', 'driver_name', 'notes']
    list_filter = ['status', 'created_at']
    readonly_fields = [
        'id', 'dn_no', 'status', 'confirmed_at', 'confirmed_by', 'picking_started_at',
        'picking_started_by', 'picking_completed_at', 'picking_completed_by', 'dispatched_at',
        'dispatched_by', 'received_at', 'received_by', 'voided_at', 'voided_by', 'void_reason',
        'created_at', 'updated_at'
    ]
    inlines = [DeliveryNoteSourceInline, DeliveryNoteItemInline]
    ordering = ['-created_at']


class PickListAssigneeInline(admin.TabularInline):
    model = PickListAssignee
    fk_name = 'pick_list'
    extra = 0
    readonly_fields = ['assigned_by', 'assigned_at']


class PickListItemInline(admin.TabularInline):
    model = PickListItem
    extra = 0
    readonly_fields = ['delivery_note_item', 'allocated_qty', 'picked_qty']
    can_delete = False


@admin.register(PickList)
class PickListAdmin(admin.ModelAdmin):
    list_display = ['pick_list_no', 'delivery_note', 'status', 'started_at', 'completed_at', 'created_at']
    search_fields = ['pick_list_no', 'delivery_note__dn_no']
    list_filter = ['status', 'created_at']
    readonly_fields = ['id', 'pick_list_no', 'status', 'started_at', 'completed_at', 'cancelled_at', 'created_at', 'updated_at']
    inlines = [PickListAssigneeInline, PickListItemInline]
    ordering = ['-created_at']
