from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models.functions import Lower

from restops.apps.branches.models import Branch, Restaurant


class InventoryItem(models.Model):
    """Ingredient definition. ``current_stock`` here is the restaurant-level (branchless) stock."""

    UNIT_CHOICES = [
        ('kg', 'Kg'),
        ('g', 'Grams'),
        ('l', 'Liters'),
        ('ml', 'ML'),
        ('pcs', 'Pieces'),
    ]

    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='inventory_items')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, null=True, blank=True, related_name='inventory_items')
    name = models.CharField(max_length=100)
    unit = models.CharField(max_length=10, choices=UNIT_CHOICES)
    current_stock = models.DecimalField(
        max_digits=12, decimal_places=3, default=Decimal('0'), validators=[MinValueValidator(0)]
    )
    low_stock_threshold = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    cost_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(
                Lower('name'), 'restaurant', 'branch',
                name='unique_inventory_name_per_branch',
            ),
            models.UniqueConstraint(
                Lower('name'), 'restaurant',
                condition=models.Q(branch__isnull=True),
                name='unique_inventory_name_without_branch',
            ),
            models.CheckConstraint(condition=models.Q(current_stock__gte=0), name='inventory_stock_non_negative'),
        ]

    def __str__(self):
        return f"{self.name} ({self.unit})"


class BranchInventory(models.Model):
    """Authoritative stock of one ingredient at one branch."""
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name='stock')
    inventory_item = models.ForeignKey(InventoryItem, on_delete=models.CASCADE, related_name='branch_stock')
    current_stock = models.DecimalField(
        max_digits=12, decimal_places=3, default=Decimal('0'), validators=[MinValueValidator(0)]
    )
    low_stock_threshold = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    cost_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['inventory_item__name']
        constraints = [
            models.UniqueConstraint(fields=['branch', 'inventory_item'], name='unique_branch_inventory'),
            models.CheckConstraint(condition=models.Q(current_stock__gte=0), name='branch_stock_non_negative'),
        ]

    def __str__(self):
        return f"{self.inventory_item.name} @ {self.branch.name}: {self.current_stock}"
