from decimal import Decimal, InvalidOperation

from django.db import IntegrityError, transaction

from restops.apps.inventory.models import InventoryItem
from restops.apps.menu.models import Category, IngredientConsumption, MenuItem
from restops.utils.exceptions import ConflictError, NotFound, ValidationError
from restops.utils.logger import RestOpsLogger

logger = RestOpsLogger(__name__)


def _check_branch(restaurant, branch):
    if branch is not None and branch.restaurant_id != restaurant.pk:
        raise NotFound("Branch not found")


def create_category(restaurant, name, branch=None, description='', display_order=0, is_active=True):
    name = (name or '').strip()
    if not name:
        raise ValidationError("Invalid category", errors={'name': 'Name is required'})
    _check_branch(restaurant, branch)

    if Category.objects.filter(restaurant=restaurant, branch=branch, name__iexact=name).exists():
        raise ValidationError("Category already exists", errors={'name': f"'{name}' already exists"})

    try:
        with transaction.atomic():
            category = Category.objects.create(
                restaurant=restaurant,
                branch=branch,
                name=name,
                description=description,
                display_order=display_order,
                is_active=is_active,
            )
    except IntegrityError:
        raise ConflictError(f"Category '{name}' was created concurrently")

    logger.info(f"Category {category.pk} '{name}' created for restaurant {restaurant.pk}")
    return category


def _clean_consumptions(restaurant, consumptions):
    """Validate ``[(inventory_item, quantity), ...]`` and return it with Decimal quantities."""
    cleaned = []
    for position, (inventory_item, quantity) in enumerate(consumptions or []):
        if not isinstance(inventory_item, InventoryItem):
            try:
                inventory_item = InventoryItem.objects.get(pk=inventory_item)
            except (InventoryItem.DoesNotExist, ValueError, TypeError):
                raise ValidationError("Unknown ingredient", errors={f'consumptions[{position}]': 'Unknown inventory item'})
        if inventory_item.restaurant_id != restaurant.pk:
            raise ValidationError(
                "Ingredient belongs to another restaurant",
                errors={f'consumptions[{position}]': 'Unknown inventory item'},
            )
        try:
            quantity = Decimal(str(quantity))
        except InvalidOperation:
            raise ValidationError("Invalid quantity", errors={f'consumptions[{position}]': 'Quantity must be a number'})
        if quantity <= 0:
            raise ValidationError("Invalid quantity", errors={f'consumptions[{position}]': 'Quantity must be positive'})
        cleaned.append((inventory_item, quantity))
    return cleaned


def _write_recipe(menu_item, cleaned):
    menu_item.consumptions.all().delete()
    IngredientConsumption.objects.bulk_create([
        IngredientConsumption(menu_item=menu_item, inventory_item=item, quantity=quantity, position=position)
        for position, (item, quantity) in enumerate(cleaned)
    ])


def create_menu_item(restaurant, category, name, price, branch=None, consumptions=None, description='',
                     available=True, available_everywhere=True, show_on_website=True, dietary_type='veg'):
    """
    Add an item to the catalog.

    ``consumptions`` is the recipe: ``[(inventory_item, quantity_per_unit), ...]``.
    """
    name = (name or '').strip()
    errors = {}
    if not name:
        errors['name'] = 'Name is required'
    try:
        price = Decimal(str(price))
        if price < 0:
            errors['price'] = 'Price cannot be negative'
    except InvalidOperation:
        errors['price'] = 'Price must be a number'
    if errors:
        raise ValidationError("Invalid menu item", errors=errors)

    _check_branch(restaurant, branch)
    if category.restaurant_id != restaurant.pk:
        raise NotFound("Category not found")

    if MenuItem.objects.filter(restaurant=restaurant, branch=branch, name__iexact=name).exists():
        raise ValidationError("Menu item already exists", errors={'name': f"'{name}' already exists"})

    cleaned = _clean_consumptions(restaurant, consumptions)
    try:
        with transaction.atomic():
            menu_item = MenuItem.objects.create(
                restaurant=restaurant,
                branch=branch,
                category=category,
                name=name,
                description=description,
                price=price,
                available=available,
                available_everywhere=available_everywhere,
                show_on_website=show_on_website,
                dietary_type=dietary_type,
            )
            _write_recipe(menu_item, cleaned)
    except IntegrityError:
        raise ConflictError(f"Menu item '{name}' was created concurrently")

    logger.info(f"Menu item {menu_item.pk} '{name}' created for restaurant {restaurant.pk} with {len(cleaned)} ingredient(s)")
    return menu_item


def set_recipe(menu_item, consumptions):
    """Replace the item's recipe. Orders already placed keep the recipe they were sold with."""
    cleaned = _clean_consumptions(menu_item.restaurant, consumptions)
    with transaction.atomic():
        _write_recipe(menu_item, cleaned)
    logger.info(f"Recipe of menu item {menu_item.pk} replaced ({len(cleaned)} ingredient(s))")
    return menu_item


def get_menu_item(restaurant, menu_item_id):
    try:
        return MenuItem.objects.select_related('category').get(restaurant=restaurant, pk=menu_item_id)
    except (MenuItem.DoesNotExist, ValueError, TypeError):
        raise NotFound("Menu item not found")
