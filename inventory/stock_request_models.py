"""
Stock request models.

A stock request asks one warehouse (the fulfilling warehouse) to ship goods to
another (the requesting warehouse). Its own status tracks the approval
workflow only; physical progress is derived from the delivery notes sourced
from it (see ``inventory.fulfillment_projection``).
"""
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import DecimalField, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from accounts.models import Business, BusinessUnit, User
from inventory.document_numbers import generate_document_number
from inventory.fulfillment_states import (
    DeliveryNoteStatus,
    StockRequestPriority,
    StockRequestStatus,
)


ZERO = Decimal('0')


def append_audit_note(existing, text, actor=None):
    """Return ``existing`` notes with a timestamped, attributed entry appended."""
    stamp = timezone.now().strftime('%Y-%m-%d %H:%M')
    author = getattr(actor, 'name', None) or getattr(actor, 'email', None) or 'system'
    entry = f"[{stamp}] {author}: {text}"
    return f"{existing}\n\n{entry}" if existing else entry


class StockRequestQuerySet(models.QuerySet):
    def alive(self):
        return self.filter(deleted_at__isnull=True)

    def for_business(self, business_id):
        return self.filter(business_id=business_id)


class StockRequest(models.Model):
    """Internal request for stock to move between two warehouses of a business."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='stock_requests')
    business_unit = models.ForeignKey(
        BusinessUnit,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='stock_requests'
    )
    request_code = models.CharField(max_length=50, db_index=True)
    requesting_warehouse = models.ForeignKey(
        'inventory.Warehouse',
        on_delete=models.PROTECT,
        related_name='outgoing_stock_requests',
        help_text="Warehouse that will receive the goods"
    )
    fulfilling_warehouse = models.ForeignKey(
        'inventory.Warehouse',
        on_delete=models.PROTECT,
        related_name='incoming_stock_requests',
        help_text="Warehouse that ships the goods"
    )
    priority = models.CharField(
        max_length=10,
        choices=StockRequestPriority.choices,
        default=StockRequestPriority.NORMAL
    )
    required_by = models.DateField(null=True, blank=True)
    status = models.CharField(
        max_length=20,
        choices=StockRequestStatus.choices,
        default=StockRequestStatus.DRAFT,
        db_index=True
    )
    notes = models.TextField(blank=True, default='')

    submitted_at = models.DateTimeField(null=True, blank=True)
    submitted_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    completed_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name='created_stock_requests'
    )
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = StockRequestQuerySet.as_manager()

    class Meta:
        db_table = 'stock_requests'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['business', 'request_code'], name='unique_stock_request_code'),
        ]
        indexes = [
            models.Index(fields=['business', 'status']),
            models.Index(fields=['business', 'created_at']),
        ]

    def __str__(self):
        return f"{self.request_code} ({self.get_status_display()})"

    def clean(self):
        super().clean()
        if self.requesting_warehouse_id and self.requesting_warehouse_id == self.fulfilling_warehouse_id:
            raise ValidationError({
                'fulfilling_warehouse': 'Requesting and fulfilling warehouses must be different'
            })

    def save(self, *args, **kwargs):
        if not self.request_code:
            self.request_code = generate_document_number(
                StockRequest,
                'request_code',
                settings.STOCK_REQUEST_CODE_PREFIX,
                self.business_id,
            )
        super().save(*args, **kwargs)

    def append_note(self, text, actor=None):
        self.notes = append_audit_note(self.notes, text, actor)


class StockRequestItemQuerySet(models.QuerySet):
    def with_rollups(self):
        """Annotate allocated and received quantities from non-voided delivery note lines."""
        live = ~models.Q(delivery_note_items__delivery_note__status=DeliveryNoteStatus.VOIDED)
        quantity = DecimalField(max_digits=14, decimal_places=3)
        return self.annotate(
            allocated_qty=Coalesce(
                Sum('delivery_note_items__allocated_qty', filter=live),
                Value(ZERO),
                output_field=quantity,
            ),
            received_qty=Coalesce(
                Sum('delivery_note_items__received_qty', filter=live),
                Value(ZERO),
                output_field=quantity,
            ),
        )


class StockRequestItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    stock_request = models.ForeignKey(StockRequest, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('inventory.Product', on_delete=models.PROTECT, related_name='stock_request_items')
    uom = models.ForeignKey(
        'inventory.UnitOfMeasure',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='stock_request_items'
    )
    requested_qty = models.DecimalField(max_digits=14, decimal_places=3)
    unit_price = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockRequestItemQuerySet.as_manager()

    class Meta:
        db_table = 'stock_request_items'
        ordering = ['created_at']
        unique_together = ['stock_request', 'product']

    def __str__(self):
        return f"{self.product.name} x{self.requested_qty}"

    def clean(self):
        if self.requested_qty is None or self.requested_qty <= 0:
            raise ValidationError({'requested_qty': 'Requested quantity must be greater than zero.'})

    def _live_lines(self):
        return self.delivery_note_items.exclude(delivery_note__status=DeliveryNoteStatus.VOIDED)

    @property
    def allocated_quantity(self):
        """Quantity allocated to non-voided delivery notes. Shortfalls stay allocated."""
        return self._live_lines().aggregate(
            total=Coalesce(Sum('allocated_qty'), Value(ZERO), output_field=DecimalField(max_digits=14, decimal_places=3))
        )['total']

    @property
    def remaining_allocatable(self):
        return max(ZERO, self.requested_qty - self.allocated_quantity)

    @property
    def fulfilled_quantity(self):
        """Received quantity rolled up from non-voided delivery note lines."""
        return self._live_lines().aggregate(
            total=Coalesce(Sum('received_qty'), Value(ZERO), output_field=DecimalField(max_digits=14, decimal_places=3))
        )['total']

    @property
    def outstanding_quantity(self):
        return max(ZERO, self.requested_qty - self.fulfilled_quantity)
