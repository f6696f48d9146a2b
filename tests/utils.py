from decimal import Decimal
from uuid import uuid4

from django.contrib.auth import get_user_model

from accounts.business_context import RequestContext
from accounts.models import Business, BusinessMembership
from inventory.delivery_note_services import DeliveryNoteAssembler
from inventory.fulfillment_states import PickListStatus
from inventory.models import Product, UnitOfMeasure, Warehouse, WarehouseStock
from inventory.pick_list_services import PickListCoordinator
from inventory.stock_request_services import StockRequestManager


User = get_user_model()


def create_user(name='Test User', email=None, password='testpass123'):
    email = email or f"{uuid4().hex[:12]}@example.com"
    return User.objects.create_user(email=email, password=password, name=name)


def create_business(owner, name=None):
    """Create a business; the owner membership is added by ``Business.save``."""
    suffix = uuid4().hex[:8]
    return Business.objects.create(
        owner=owner,
        name=name or f"Business {suffix}",
        tin=f"TIN-{suffix}",
        email=owner.email,
        address='1 Warehouse Road',
    )


def add_member(business, user, role=BusinessMembership.STAFF, default_business_unit=None):
    return BusinessMembership.objects.create(
        business=business,
        user=user,
        role=role,
        default_business_unit=default_business_unit,
        is_active=True,
    )


def context_for(user, business_unit=None):
    membership = user.primary_membership
    return RequestContext(
        company_id=membership.business_id,
        business_unit_id=business_unit.id if business_unit else membership.default_business_unit_id,
        user_id=user.id,
        user=user,
    )


def create_warehouse(business, code, name=None, business_unit=None):
    return Warehouse.objects.create(
        business=business,
        business_unit=business_unit,
        code=code,
        name=name or f"Warehouse {code}",
    )


def create_product(business, sku, name=None, uom=None):
    return Product.objects.create(business=business, sku=sku, name=name or sku, default_uom=uom)


def set_stock(warehouse, product, quantity):
    stock, _ = WarehouseStock.objects.update_or_create(
        warehouse=warehouse,
        product=product,
        defaults={'business': warehouse.business, 'quantity': Decimal(str(quantity))},
    )
    return stock


class FulfillmentTestMixin:
    """
    One tenant with a main warehouse, a branch and two stocked products,
    plus helpers that drive a stock request through the pipeline.
    """

    def setUpFulfillment(self):
        self.owner = create_user(name='Owner')
        self.business = create_business(self.owner)
        self.context = context_for(self.owner)
        self.main = create_warehouse(self.business, 'MAIN', 'Main Warehouse')
        self.branch = create_warehouse(self.business, 'BR01', 'Branch Store')
        self.uom = UnitOfMeasure.objects.create(business=self.business, name='Piece', symbol='pc')
        self.widget = create_product(self.business, 'SKU-001', 'Widget', uom=self.uom)
        self.gadget = create_product(self.business, 'SKU-002', 'Gadget', uom=self.uom)
        set_stock(self.main, self.widget, 500)
        set_stock(self.main, self.gadget, 500)

    # Stock requests -------------------------------------------------------

    def draft_request(self, quantities=None, context=None):
        quantities = quantities or {self.widget: Decimal('100')}
        return StockRequestManager(context or self.context).create(
            requesting_warehouse_id=self.branch.id,
            fulfilling_warehouse_id=self.main.id,
            items=[
                {'product_id': product.id, 'requested_qty': Decimal(str(qty))}
                for product, qty in quantities.items()
            ],
        )

    def approved_request(self, quantities=None):
        manager = StockRequestManager(self.context)
        stock_request = self.draft_request(quantities)
        manager.submit(stock_request.id)
        return manager.approve(stock_request.id)

    # Delivery notes -------------------------------------------------------

    def draft_note(self, stock_request, allocations=None):
        """Allocate ``allocations`` (product -> qty), or every requested quantity."""
        items = []
        for item in stock_request.items.all():
            quantity = item.requested_qty
            if allocations is not None:
                if item.product not in allocations:
                    continue
                quantity = Decimal(str(allocations[item.product]))
            items.append({'stock_request_item_id': item.id, 'allocated_qty': quantity})
        return DeliveryNoteAssembler(self.context).create(
            stock_request_ids=[stock_request.id],
            items=items,
        )

    def confirmed_note(self, stock_request, allocations=None):
        delivery_note = self.draft_note(stock_request, allocations)
        return DeliveryNoteAssembler(self.context).confirm(delivery_note.id)

    def picking_note(self, stock_request, allocations=None):
        """Return ``(delivery_note, pick_list)`` with picking started."""
        delivery_note = self.confirmed_note(stock_request, allocations)
        coordinator = PickListCoordinator(self.context)
        pick_list = coordinator.create(delivery_note_id=delivery_note.id, picker_user_ids=[self.owner.id])
        coordinator.update_status(pick_list.id, PickListStatus.IN_PROGRESS)
        delivery_note.refresh_from_db()
        return delivery_note, pick_list

    def ready_note(self, stock_request, allocations=None, picked=None):
        """
        Drive a note to dispatch_ready. ``picked`` maps product -> picked
        quantity; lines not listed are picked in full.
        """
        delivery_note, pick_list = self.picking_note(stock_request, allocations)
        progress = []
        for item in delivery_note.items.select_related('product'):
            quantity = item.allocated_qty
            if picked and item.product in picked:
                quantity = Decimal(str(picked[item.product]))
            progress.append({'delivery_note_item_id': item.id, 'picked_qty': quantity})
        PickListCoordinator(self.context).update_items(pick_list.id, progress)
        return DeliveryNoteAssembler(self.context).mark_dispatch_ready(delivery_note.id)
