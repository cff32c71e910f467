# menu/models.py
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models.functions import Lower

from restops.apps.branches.models import Branch, Restaurant
from restops.apps.inventory.models import InventoryItem


class Category(models.Model):
    """Food categories like Breakfast, Coffee, Meals, etc."""
    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='categories')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, null=True, blank=True, related_name='categories')
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, default='')
    is_active = models.BooleanField(default=True)
    display_order = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "Categories"
        ordering = ['display_order', 'created_at']
        constraints = [
            models.UniqueConstraint(Lower('name'), 'restaurant', 'branch', name='unique_category_name_per_branch'),
            models.UniqueConstraint(
                Lower('name'), 'restaurant',
                condition=models.Q(branch__isnull=True),
                name='unique_category_name_without_branch',
            ),
        ]

    def __str__(self):
        return self.name


class MenuItem(models.Model):
    """Restaurant-level catalog entry. Branches refine it through BranchMenuItem."""

    DIETARY_CHOICES = [
        ('veg', 'Veg'),
        ('non_veg', 'Non veg'),
        ('egg', 'Egg'),
    ]

    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='menu_items')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, null=True, blank=True, related_name='menu_items')
    category = models.ForeignKey(Category, on_delete=models.CASCADE, related_name='items')
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, default='')
    price = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(0)])
    available = models.BooleanField(default=True)
    # False: only branches holding a BranchMenuItem row list this item
    available_everywhere = models.BooleanField(default=True)
    show_on_website = models.BooleanField(default=True)
    dietary_type = models.CharField(max_length=10, choices=DIETARY_CHOICES, default='veg')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['category__display_order', 'name']
        constraints = [
            models.UniqueConstraint(Lower('name'), 'restaurant', 'branch', name='unique_menu_item_name_per_branch'),
            models.UniqueConstraint(
                Lower('name'), 'restaurant',
                condition=models.Q(branch__isnull=True),
                name='unique_menu_item_name_without_branch',
            ),
        ]

    def __str__(self):
        return f"{self.name} - ₹{self.price}"

    def recipe(self):
        """Per-unit consumption as [(inventory_item_id, quantity)], in recipe order."""
        return [(c.inventory_item_id, c.quantity) for c in self.consumptions.all()]


class IngredientConsumption(models.Model):
    """How much of an ingredient one unit of a menu item uses."""
    menu_item = models.ForeignKey(MenuItem, on_delete=models.CASCADE, related_name='consumptions')
    inventory_item = models.ForeignKey(InventoryItem, on_delete=models.PROTECT, related_name='consumed_by')
    quantity = models.DecimalField(
        max_digits=12, decimal_places=3, validators=[MinValueValidator(Decimal('0.001'))]
    )
    position = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['position', 'id']
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gt=0), name='consumption_quantity_positive'),
        ]

    def __str__(self):
        return f"{self.menu_item.name}: {self.quantity} {self.inventory_item.unit} {self.inventory_item.name}"


class BranchMenuItem(models.Model):
    """Branch override of a menu item. Its presence means the branch has an explicit opinion."""
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name='menu_overrides')
    menu_item = models.ForeignKey(MenuItem, on_delete=models.CASCADE, related_name='branch_overrides')
    price_override = models.DecimalField(
        max_digits=8, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)]
    )
    available = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['menu_item__name']
        constraints = [
            models.UniqueConstraint(fields=['branch', 'menu_item'], name='unique_branch_menu_item'),
        ]

    def __str__(self):
        return f"{self.menu_item.name} ({self.branch.name}) - {'Available' if self.available else 'Not Available'}"
