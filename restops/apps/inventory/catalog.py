from decimal import Decimal

from django.db import IntegrityError, transaction

from restops.apps.inventory.models import BranchInventory, InventoryItem
from restops.utils.exceptions import ConflictError, NotFound, ValidationError
from restops.utils.logger import RestOpsLogger

logger = RestOpsLogger(__name__)

UNITS = {code for code, _ in InventoryItem.UNIT_CHOICES}


def create_inventory_item(restaurant, name, unit, branch=None, initial_stock=0,
                          low_stock_threshold=0, cost_price=0):
    """
    Define an ingredient. With a branch the initial stock goes on that branch's
    BranchInventory row, otherwise on the item itself.
    """
    name = (name or '').strip()
    errors = {}
    if not name:
        errors['name'] = 'Name is required'
    if unit not in UNITS:
        errors['unit'] = f"Unit must be one of {sorted(UNITS)}"
    if Decimal(str(initial_stock)) < 0:
        errors['initial_stock'] = 'Stock cannot be negative'
    if errors:
        raise ValidationError("Invalid inventory item", errors=errors)

    if branch is not None and branch.restaurant_id != restaurant.pk:
        raise NotFound("Branch not found")

    if InventoryItem.objects.filter(restaurant=restaurant, branch=branch, name__iexact=name).exists():
        raise ValidationError("Inventory item already exists", errors={'name': f"'{name}' already exists"})

    stock = Decimal(str(initial_stock))
    try:
        with transaction.atomic():
            item = InventoryItem.objects.create(
                restaurant=restaurant,
                branch=branch,
                name=name,
                unit=unit,
                current_stock=stock if branch is None else Decimal('0'),
                low_stock_threshold=low_stock_threshold,
                cost_price=cost_price,
            )
            if branch is not None:
                BranchInventory.objects.create(
                    branch=branch,
                    inventory_item=item,
                    current_stock=stock,
                    low_stock_threshold=low_stock_threshold,
                    cost_price=cost_price,
                )
    except IntegrityError:
        logger.warning(f"Concurrent create of inventory item '{name}' for restaurant {restaurant.pk}")
        raise ConflictError(f"Inventory item '{name}' was created concurrently")

    logger.info(f"Inventory item {item.pk} '{name}' created for restaurant {restaurant.pk}")
    return item


def get_inventory_item(restaurant, item_id):
    try:
        return InventoryItem.objects.get(restaurant=restaurant, pk=item_id)
    except (InventoryItem.DoesNotExist, ValueError, TypeError):
        raise NotFound("Inventory item not found")
