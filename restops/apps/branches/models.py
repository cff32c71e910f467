from django.db import models


class Restaurant(models.Model):
    """Tenant root. Every catalog, inventory and order row hangs off a restaurant."""
    name = models.CharField(max_length=150)
    # POS/inventory behaviour: let orders through when ingredients run out (stock floors at zero)
    allow_order_when_out_of_stock = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name


class Branch(models.Model):
    STATUS_ACTIVE = 'active'
    STATUS_INACTIVE = 'inactive'
    STATUS_CLOSED_TODAY = 'closed_today'

    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_INACTIVE, 'Inactive'),
        (STATUS_CLOSED_TODAY, 'Closed today'),
    ]

    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='branches')
    name = models.CharField(max_length=100)
    code = models.CharField(max_length=30, blank=True, null=True)
    address = models.TextField(blank=True, default='')
    contact_phone = models.CharField(max_length=20, blank=True, default='')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    sort_order = models.PositiveIntegerField(default=0)

    # soft delete, recoverable for a limited window (see branches.services)
    is_deleted = models.BooleanField(default=False, db_index=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['sort_order', 'created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['restaurant', 'code'],
                condition=models.Q(code__isnull=False),
                name='unique_branch_code_per_restaurant',
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.restaurant.name})"

    @property
    def accepts_orders(self):
        return not self.is_deleted and self.status == self.STATUS_ACTIVE


class Table(models.Model):
    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='tables')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, null=True, blank=True, related_name='tables')
    table_number = models.CharField(max_length=20)
    capacity = models.PositiveIntegerField(default=4)
    is_available = models.BooleanField(default=True)

    class Meta:
        ordering = ['table_number']
        constraints = [
            models.UniqueConstraint(
                fields=['restaurant', 'branch', 'table_number'],
                name='unique_table_number_per_branch',
            ),
            models.UniqueConstraint(
                fields=['restaurant', 'table_number'],
                condition=models.Q(branch__isnull=True),
                name='unique_table_number_without_branch',
            ),
        ]

    def __str__(self):
        return f"Table {self.table_number} - {'Available' if self.is_available else 'Occupied'}"
