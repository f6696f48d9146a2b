"""Pick list models: picking tasks raised against a delivery note."""
import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models

from accounts.models import Business, BusinessUnit, User
from inventory.document_numbers import generate_document_number
from inventory.fulfillment_states import OPEN_PICK_LIST_STATUSES, PickListStatus


class PickListQuerySet(models.QuerySet):
    def alive(self):
        return self.filter(deleted_at__isnull=True)

    def open(self):
        return self.alive().filter(status__in=OPEN_PICK_LIST_STATUSES)


class PickList(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='pick_lists')
    business_unit = models.ForeignKey(
        BusinessUnit,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='pick_lists'
    )
    pick_list_no = models.CharField(max_length=50, db_index=True)
    delivery_note = models.ForeignKey(
        'inventory.DeliveryNote',
        on_delete=models.PROTECT,
        related_name='pick_lists'
    )
    status = models.CharField(
        max_length=20,
        choices=PickListStatus.choices,
        default=PickListStatus.PENDING,
        db_index=True
    )
    notes = models.TextField(blank=True, default='')
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name='created_pick_lists'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = PickListQuerySet.as_manager()

    class Meta:
        db_table = 'pick_lists'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['business', 'pick_list_no'], name='unique_pick_list_number'),
        ]
        indexes = [
            models.Index(fields=['business', 'status']),
            models.Index(fields=['delivery_note', 'status']),
        ]

    def __str__(self):
        return f"{self.pick_list_no} ({self.get_status_display()})"

    def save(self, *args, **kwargs):
        if not self.pick_list_no:
            self.pick_list_no = generate_document_number(
                PickList,
                'pick_list_no',
                settings.PICK_LIST_NUMBER_PREFIX,
                self.business_id,
            )
        super().save(*args, **kwargs)

    @property
    def is_open(self):
        return self.deleted_at is None and self.status in OPEN_PICK_LIST_STATUSES


class PickListAssignee(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    pick_list = models.ForeignKey(PickList, on_delete=models.CASCADE, related_name='assignees')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='pick_list_assignments')
    assigned_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    assigned_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'pick_list_assignees'
        ordering = ['assigned_at']
        unique_together = ['pick_list', 'user']

    def __str__(self):
        return f"{self.user.name} -> {self.pick_list.pick_list_no}"


class PickListItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    pick_list = models.ForeignKey(PickList, on_delete=models.CASCADE, related_name='items')
    delivery_note_item = models.ForeignKey(
        'inventory.DeliveryNoteItem',
        on_delete=models.CASCADE,
        related_name='pick_list_items'
    )
    allocated_qty = models.DecimalField(max_digits=14, decimal_places=3)
    picked_qty = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal('0'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'pick_list_items'
        ordering = ['created_at', 'id']
        unique_together = ['pick_list', 'delivery_note_item']

    def __str__(self):
        return f"{self.delivery_note_item.product.name}: {self.picked_qty}/{self.allocated_qty}"
