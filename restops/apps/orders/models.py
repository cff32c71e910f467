from django.conf import settings
from django.db import models
from django.utils import timezone

from restops.apps.branches.models import Branch, Restaurant, Table
from restops.apps.menu.models import MenuItem


class OrderStatus(models.TextChoices):
    UNPROCESSED = 'UNPROCESSED', 'Unprocessed'
    PENDING = 'PENDING', 'Pending'
    READY = 'READY', 'Ready'
    COMPLETED = 'COMPLETED', 'Completed'
    CANCELLED = 'CANCELLED', 'Cancelled'


TERMINAL_STATUSES = (OrderStatus.COMPLETED, OrderStatus.CANCELLED)
OPEN_STATUSES = (OrderStatus.UNPROCESSED, OrderStatus.PENDING, OrderStatus.READY)


class OrderSource(models.TextChoices):
    POS = 'POS', 'Point of sale'
    WEBSITE = 'WEBSITE', 'Website'


class OrderType(models.TextChoices):
    DINE_IN = 'DINE_IN', 'Dine in'
    TAKEAWAY = 'TAKEAWAY', 'Takeaway'
    DELIVERY = 'DELIVERY', 'Delivery'


class PaymentMethod(models.TextChoices):
    CASH = 'CASH', 'Cash'
    CARD = 'CARD', 'Card'


class Order(models.Model):
    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='orders')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, null=True, blank=True, related_name='orders')
    table = models.ForeignKey(Table, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')

    source = models.CharField(max_length=10, choices=OrderSource.choices, default=OrderSource.POS)
    order_type = models.CharField(max_length=10, choices=OrderType.choices, default=OrderType.DINE_IN)
    payment_method = models.CharField(max_length=10, choices=PaymentMethod.choices, blank=True, default='')
    status = models.CharField(max_length=15, choices=OrderStatus.choices, default=OrderStatus.UNPROCESSED, db_index=True)

    subtotal = models.DecimalField(max_digits=10, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=10, decimal_places=2)

    customer_name = models.CharField(max_length=100, blank=True, default='')
    customer_phone = models.CharField(max_length=20, blank=True, default='')
    delivery_address = models.TextField(blank=True, default='')
    notes = models.TextField(blank=True, default='')

    amount_received = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    amount_returned = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_orders'
    )

    token_number = models.PositiveIntegerField()
    token_date = models.DateField(default=timezone.localdate)
    order_number = models.CharField(max_length=40, db_index=True)
    # what the ledger actually took: {"inventory_item_id": "quantity"}
    stock_deducted = models.JSONField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['restaurant', 'branch', 'token_date', 'token_number'],
                name='unique_order_token_per_branch_day',
            ),
            models.UniqueConstraint(
                fields=['restaurant', 'token_date', 'token_number'],
                condition=models.Q(branch__isnull=True),
                name='unique_order_token_without_branch_day',
            ),
        ]

    def __str__(self):
        return f"{self.order_number} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    @property
    def is_paid(self):
        return self.paid_at is not None


class OrderItem(models.Model):
    """Snapshot of one line as it was sold."""
    order = models.ForeignKey(Order, related_name='items', on_delete=models.CASCADE)
    menu_item = models.ForeignKey(MenuItem, on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    name = models.CharField(max_length=100)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    line_total = models.DecimalField(max_digits=10, decimal_places=2)
    # per-unit consumption at sale time: [[inventory_item_id, "quantity"], ...]
    recipe = models.JSONField(null=True, blank=True)

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.quantity}x {self.name} for Order #{self.order_id}"


class Customer(models.Model):
    """Repeat-customer record, one per phone number at a restaurant branch."""
    WALK_IN_NAME = 'Walk-in Customer'

    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='customers')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, null=True, blank=True, related_name='customers')
    name = models.CharField(max_length=100, default=WALK_IN_NAME)
    phone = models.CharField(max_length=20)
    total_orders = models.PositiveIntegerField(default=0)
    total_spent = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    last_order_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-last_order_at']
        constraints = [
            models.UniqueConstraint(fields=['restaurant', 'branch', 'phone'], name='unique_customer_phone_per_branch'),
            models.UniqueConstraint(
                fields=['restaurant', 'phone'],
                condition=models.Q(branch__isnull=True),
                name='unique_customer_phone_without_branch',
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.phone})"
