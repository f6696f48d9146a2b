"""
Delivery note models.

A delivery note consolidates one or more approved stock requests sharing the
same warehouse pair into a single shipment. Each line records the five
quantity stages: allocated, picked, short, dispatched and received.
"""
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from accounts.models import Business, BusinessUnit, User
from inventory.document_numbers import generate_document_number
from inventory.fulfillment_states import DeliveryNoteStatus
from inventory.stock_request_models import append_audit_note


ZERO = Decimal('0')


class DeliveryNote(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='delivery_notes')
    business_unit = models.ForeignKey(
        BusinessUnit,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='delivery_notes'
    )
    dn_no = models.CharField(max_length=50, db_index=True)
    status = models.CharField(
        max_length=30,
        choices=DeliveryNoteStatus.choices,
        default=DeliveryNoteStatus.DRAFT,
        db_index=True
    )
    requesting_warehouse = models.ForeignKey(
        'inventory.Warehouse',
        on_delete=models.PROTECT,
        related_name='inbound_delivery_notes'
    )
    fulfilling_warehouse = models.ForeignKey(
        'inventory.Warehouse',
        on_delete=models.PROTECT,
        related_name='outbound_delivery_notes'
    )

    confirmed_at = models.DateTimeField(null=True, blank=True)
    confirmed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    picking_started_at = models.DateTimeField(null=True, blank=True)
    picking_started_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    picking_completed_at = models.DateTimeField(null=True, blank=True)
    picking_completed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    dispatched_at = models.DateTimeField(null=True, blank=True)
    dispatched_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    dispatch_date = models.DateField(null=True, blank=True)
    received_at = models.DateTimeField(null=True, blank=True)
    received_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    received_date = models.DateField(null=True, blank=True)
    voided_at = models.DateTimeField(null=True, blank=True)
    voided_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    void_reason = models.TextField(blank=True, default='')

    driver_name = models.CharField(max_length=255, blank=True, default='')
    driver_signature = models.TextField(blank=True, default='')
    notes = models.TextField(blank=True, default='')

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name='created_delivery_notes'
    )
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    stock_requests = models.ManyToManyField(
        'inventory.StockRequest',
        through='inventory.DeliveryNoteSource',
        related_name='delivery_notes'
    )

    class Meta:
        db_table = 'delivery_notes'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['business', 'dn_no'], name='unique_delivery_note_number'),
        ]
        indexes = [
            models.Index(fields=['business', 'status']),
            models.Index(fields=['fulfilling_warehouse', 'status']),
            models.Index(fields=['requesting_warehouse', 'status']),
        ]

    def __str__(self):
        return f"{self.dn_no} ({self.get_status_display()})"

    def save(self, *args, **kwargs):
        if not self.dn_no:
            self.dn_no = generate_document_number(
                DeliveryNote,
                'dn_no',
                settings.DELIVERY_NOTE_NUMBER_PREFIX,
                self.business_id,
            )
        super().save(*args, **kwargs)

    def append_note(self, text, actor=None):
        self.notes = append_audit_note(self.notes, text, actor)

    @property
    def total_allocated(self):
        return sum((item.allocated_qty for item in self.items.all()), ZERO)

    @property
    def total_dispatched(self):
        return sum((item.dispatched_qty for item in self.items.all()), ZERO)


class DeliveryNoteSource(models.Model):
    """Provenance row: one per stock request contributing to a delivery note."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    delivery_note = models.ForeignKey(DeliveryNote, on_delete=models.CASCADE, related_name='sources')
    stock_request = models.ForeignKey(
        'inventory.StockRequest',
        on_delete=models.PROTECT,
        related_name='delivery_note_sources'
    )
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'delivery_note_sources'
        ordering = ['created_at']
        unique_together = ['delivery_note', 'stock_request']

    def __str__(self):
        return f"{self.delivery_note.dn_no} <- {self.stock_request.request_code}"


class DeliveryNoteItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    delivery_note = models.ForeignKey(DeliveryNote, on_delete=models.CASCADE, related_name='items')
    stock_request = models.ForeignKey(
        'inventory.StockRequest',
        on_delete=models.PROTECT,
        related_name='delivery_note_items'
    )
    stock_request_item = models.ForeignKey(
        'inventory.StockRequestItem',
        on_delete=models.PROTECT,
        related_name='delivery_note_items'
    )
    product = models.ForeignKey('inventory.Product', on_delete=models.PROTECT, related_name='delivery_note_items')
    uom = models.ForeignKey(
        'inventory.UnitOfMeasure',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='delivery_note_items'
    )
    allocated_qty = models.DecimalField(max_digits=14, decimal_places=3)
    picked_qty = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO)
    short_qty = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO)
    dispatched_qty = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO)
    received_qty = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'delivery_note_items'
        ordering = ['created_at', 'id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(picked_qty__gte=0) & models.Q(picked_qty__lte=models.F('allocated_qty')),
                name='dn_item_picked_within_allocated',
            ),
            models.CheckConstraint(
                condition=models.Q(dispatched_qty__gte=0) & models.Q(dispatched_qty__lte=models.F('picked_qty')),
                name='dn_item_dispatched_within_picked',
            ),
            models.CheckConstraint(
                condition=models.Q(received_qty__gte=0) & models.Q(received_qty__lte=models.F('dispatched_qty')),
                name='dn_item_received_within_dispatched',
            ),
        ]

    def __str__(self):
        return f"{self.product.name} x{self.allocated_qty}"

    def clean(self):
        errors = {}
        if self.allocated_qty is None or self.allocated_qty <= 0:
            errors['allocated_qty'] = 'Allocated quantity must be greater than zero.'
        elif not (ZERO <= self.picked_qty <= self.allocated_qty):
            errors['picked_qty'] = 'Picked quantity must be between 0 and the allocated quantity.'
        elif not (ZERO <= self.dispatched_qty <= self.picked_qty):
            errors['dispatched_qty'] = 'Dispatched quantity must be between 0 and the picked quantity.'
        elif not (ZERO <= self.received_qty <= self.dispatched_qty):
            errors['received_qty'] = 'Received quantity must be between 0 and the dispatched quantity.'
        if errors:
            raise ValidationError(errors)

    @property
    def undispatched_qty(self):
        return max(ZERO, self.picked_qty - self.dispatched_qty)

    @property
    def outstanding_receipt_qty(self):
        return max(ZERO, self.dispatched_qty - self.received_qty)

    def finalize_picking(self, picked_qty):
        """Fix the picked quantity and derive the shortfall."""
        self.picked_qty = min(max(picked_qty, ZERO), self.allocated_qty)
        self.short_qty = max(ZERO, self.allocated_qty - self.picked_qty)
