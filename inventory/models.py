import uuid

from decimal import Decimal

from django.db import models
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError

from accounts.models import Business, BusinessUnit


User = get_user_model()

QUANTITY_FIELD_KWARGS = {'max_digits': 14, 'decimal_places': 3, 'default': Decimal('0')}


class Warehouse(models.Model):
    """Warehouses for storing inventory"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='warehouses')
    business_unit = models.ForeignKey(
        BusinessUnit,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='warehouses'
    )
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=50)
    location = models.TextField(blank=True, default='')
    manager = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='managed_warehouses')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'warehouses'
        ordering = ['name']
        unique_together = ['business', 'code']

    def __str__(self):
        return f"{self.name} ({self.code})"

    def clean(self):
        if self.business_unit_id and self.business_unit.business_id != self.business_id:
            raise ValidationError({'business_unit': 'Business unit must belong to the warehouse business.'})

    def default_location(self):
        """Return the default storage location, creating it on first use."""
        location = self.locations.filter(is_default=True).first()
        if location is None:
            location, _ = StorageLocation.objects.get_or_create(
                warehouse=self,
                code=StorageLocation.DEFAULT_CODE,
                defaults={'name': 'Default', 'is_default': True},
            )
        return location


class StorageLocation(models.Model):
    """A bin or shelf inside a warehouse."""
    DEFAULT_CODE = 'DEFAULT'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    warehouse = models.ForeignKey(Warehouse, on_delete=models.CASCADE, related_name='locations')
    code = models.CharField(max_length=50)
    name = models.CharField(max_length=255, blank=True, default='')
    is_default = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'storage_locations'
        ordering = ['warehouse__name', 'code']
        unique_together = ['warehouse', 'code']

    def __str__(self):
        return f"{self.warehouse.code}/{self.code}"


class UnitOfMeasure(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='units_of_measure')
    name = models.CharField(max_length=100)
    symbol = models.CharField(max_length=20)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'units_of_measure'
        ordering = ['name']
        unique_together = ['business', 'symbol']

    def __str__(self):
        return self.symbol


class Product(models.Model):
    """Products in the inventory"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='products')
    name = models.CharField(max_length=255)
    sku = models.CharField(max_length=100)
    barcode = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    description = models.TextField(blank=True, null=True)
    default_uom = models.ForeignKey(
        UnitOfMeasure,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='products'
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'products'
        ordering = ['name']
        unique_together = [
            ['business', 'sku'],  # Prevent duplicate SKUs per business
        ]
        indexes = [
            models.Index(fields=['business', 'sku']),
            models.Index(fields=['business', 'barcode']),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"


class WarehouseStock(models.Model):
    """On-hand balance of one product in one warehouse."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='warehouse_stock')
    warehouse = models.ForeignKey(Warehouse, on_delete=models.CASCADE, related_name='stock_levels')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='warehouse_stock')
    quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'warehouse_stock'
        unique_together = ['warehouse', 'product']
        indexes = [
            models.Index(fields=['business', 'product']),
        ]

    def __str__(self):
        return f"{self.product.name} @ {self.warehouse.name}: {self.quantity}"


class LocationStock(models.Model):
    """On-hand balance of one product in one storage location."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    location = models.ForeignKey(StorageLocation, on_delete=models.CASCADE, related_name='stock_levels')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='location_stock')
    quantity = models.DecimalField(**QUANTITY_FIELD_KWARGS)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'location_stock'
        unique_together = ['location', 'product']

    def __str__(self):
        return f"{self.product.name} @ {self.location}: {self.quantity}"


class StockMovement(models.Model):
    """Ledger row written for every stock change made by dispatch or receipt."""
    TYPE_DISPATCH = 'dispatch'
    TYPE_RECEIPT = 'receipt'
    MOVEMENT_TYPE_CHOICES = [
        (TYPE_DISPATCH, 'Dispatch'),
        (TYPE_RECEIPT, 'Receipt'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='stock_movements')
    business_unit = models.ForeignKey(
        BusinessUnit,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='stock_movements'
    )
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name='movements')
    location = models.ForeignKey(
        StorageLocation,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements'
    )
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='movements')
    uom = models.ForeignKey(UnitOfMeasure, on_delete=models.PROTECT, null=True, blank=True, related_name='movements')
    movement_type = models.CharField(max_length=20, choices=MOVEMENT_TYPE_CHOICES, db_index=True)
    quantity = models.DecimalField(max_digits=14, decimal_places=3)
    qty_before = models.DecimalField(max_digits=14, decimal_places=3)
    qty_after = models.DecimalField(max_digits=14, decimal_places=3)
    reference_type = models.CharField(max_length=50)
    reference_id = models.UUIDField()
    reference_number = models.CharField(max_length=100, blank=True, default='')
    notes = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='stock_movements')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'stock_movements'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['business', 'warehouse', 'product']),
            models.Index(fields=['reference_type', 'reference_id']),
        ]

    def __str__(self):
        return f"{self.movement_type} {self.product.name} {self.quantity} ({self.reference_number})"


from .stock_request_models import StockRequest, StockRequestItem  # noqa: E402
from .delivery_note_models import DeliveryNote, DeliveryNoteItem, DeliveryNoteSource  # noqa: E402
from .pick_list_models import PickList, PickListAssignee, PickListItem  # noqa: E402

__all__ = [
    'Warehouse', 'StorageLocation', 'UnitOfMeasure', 'Product',
    'WarehouseStock', 'LocationStock', 'StockMovement',
    'StockRequest', 'StockRequestItem',
    'DeliveryNote', 'DeliveryNoteItem', 'DeliveryNoteSource',
    'PickList', 'PickListAssignee', 'PickListItem',
]
