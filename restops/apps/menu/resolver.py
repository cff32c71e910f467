"""
Catalog resolver.

Merges the restaurant catalog with a branch's overrides and stock levels into the
menu a customer or cashier actually sees at that branch.
"""

from collections import defaultdict
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Iterable, List, Optional

from django.db.models import Q

from restops.apps.branches.models import Branch
from restops.apps.inventory.ledger import ZERO, stock_source_for
from restops.apps.menu.models import BranchMenuItem, Category, MenuItem
from restops.utils.exceptions import NotFound
from restops.utils.logger import RestOpsLogger

logger = RestOpsLogger(__name__)


@dataclass
class MenuFilters:
    available: Optional[bool] = None
    show_on_website: Optional[bool] = None
    category_id: Optional[int] = None
    item_ids: Optional[Iterable[int]] = None
    only_available: bool = False
    active_categories_only: bool = False
    exclude_empty: bool = False


@dataclass
class EffectiveMenuItem:
    menu_item: MenuItem
    base_price: Decimal
    price_override: Optional[Decimal]
    effective_price: Decimal
    base_available: bool
    override_available: Optional[bool]
    has_override: bool
    ingredients_sufficient: bool
    listed_available: bool
    effective_available: bool
    recipe: list = field(default_factory=list)

    @property
    def id(self):
        return self.menu_item.pk

    @property
    def name(self):
        return self.menu_item.name

    @property
    def category_id(self):
        return self.menu_item.category_id

    def as_dict(self):
        item = self.menu_item
        return {
            'id': item.pk,
            'name': item.name,
            'description': item.description,
            'category_id': item.category_id,
            'category_name': item.category.name,
            'dietary_type': item.dietary_type,
            'show_on_website': item.show_on_website,
            'branch_id': item.branch_id,
            'base_price': str(self.base_price),
            'price_override': str(self.price_override) if self.price_override is not None else None,
            'effective_price': str(self.effective_price),
            'base_available': self.base_available,
            'override_available': self.override_available,
            'has_override': self.has_override,
            'ingredients_sufficient': self.ingredients_sufficient,
            'available': self.effective_available,
        }


@dataclass
class CategoryGroup:
    category: Category
    items: List[EffectiveMenuItem]

    def as_dict(self):
        return {
            'id': self.category.pk,
            'name': self.category.name,
            'description': self.category.description,
            'display_order': self.category.display_order,
            'items': [item.as_dict() for item in self.items],
        }


def _scope(branch):
    if branch is None:
        return Q(branch__isnull=True)
    return Q(branch__isnull=True) | Q(branch=branch)


def _check_branch(restaurant, branch):
    if branch is not None and branch.restaurant_id != restaurant.pk:
        raise NotFound("Branch not found")


def _per_unit_recipe(menu_item):
    """Recipe with repeated ingredients summed, keyed by inventory item id."""
    per_unit = defaultdict(lambda: ZERO)
    for item_id, quantity in menu_item.recipe():
        per_unit[item_id] += quantity
    return dict(per_unit)


def _evaluate(menu_item, branch, override, levels):
    per_unit = _per_unit_recipe(menu_item)
    sufficient = all(required <= levels.get(item_id, ZERO) for item_id, required in per_unit.items())

    listed = menu_item.available and (menu_item.available_everywhere or branch is None)
    if override is not None:
        listed = override.available

    price_override = override.price_override if override is not None else None
    return EffectiveMenuItem(
        menu_item=menu_item,
        base_price=menu_item.price,
        price_override=price_override,
        effective_price=price_override if price_override is not None else menu_item.price,
        base_available=menu_item.available,
        override_available=override.available if override is not None else None,
        has_override=override is not None,
        ingredients_sufficient=sufficient,
        listed_available=listed,
        effective_available=listed and sufficient,
        recipe=menu_item.recipe(),
    )


def resolve_menu(restaurant, branch=None, filters=None):
    """
    Effective menu of ``restaurant`` at ``branch`` (or the branchless menu).

    Items scoped to another branch never appear. Items not available everywhere
    are dropped at branches without an override row. Stock comes from the
    branch's rows when a branch is given, else from the restaurant-level stock.
    """
    filters = filters or MenuFilters()
    _check_branch(restaurant, branch)

    items = (
        MenuItem.objects.filter(restaurant=restaurant)
        .filter(_scope(branch))
        .select_related('category')
        .prefetch_related('consumptions')
        .order_by('category__display_order', 'name', 'id')
    )
    if filters.available is not None:
        items = items.filter(available=filters.available)
    if filters.show_on_website is not None:
        items = items.filter(show_on_website=filters.show_on_website)
    if filters.category_id is not None:
        items = items.filter(category_id=filters.category_id)
    if filters.item_ids is not None:
        items = items.filter(pk__in=list(filters.item_ids))
    if filters.active_categories_only:
        items = items.filter(category__is_active=True)
    items = list(items)

    overrides = {}
    if branch is not None and items:
        overrides = {
            row.menu_item_id: row
            for row in BranchMenuItem.objects.filter(branch=branch, menu_item__in=items)
        }

    ingredient_ids = {c.inventory_item_id for item in items for c in item.consumptions.all()}
    levels = stock_source_for(restaurant, branch).levels(ingredient_ids) if ingredient_ids else {}

    resolved = []
    for item in items:
        override = overrides.get(item.pk)
        if branch is not None and not item.available_everywhere and override is None:
            continue
        effective = _evaluate(item, branch, override, levels)
        if filters.only_available and not effective.effective_available:
            continue
        resolved.append(effective)

    logger.debug(
        f"Resolved {len(resolved)} of {len(items)} item(s) for restaurant {restaurant.pk}"
        f" branch {branch.pk if branch else None}"
    )
    return resolved


def resolve_menu_item(restaurant, menu_item_id, branch=None, filters=None):
    """One effective item, or None when unknown, excluded at this branch or filtered out."""
    try:
        menu_item_id = int(menu_item_id)
    except (TypeError, ValueError):
        return None
    resolved = resolve_menu(restaurant, branch, replace(filters or MenuFilters(), item_ids=[menu_item_id]))
    return resolved[0] if resolved else None


def resolve_menu_by_category(restaurant, branch=None, filters=None):
    filters = filters or MenuFilters()
    items = resolve_menu(restaurant, branch, filters)

    categories = Category.objects.filter(restaurant=restaurant).filter(_scope(branch))
    if filters.active_categories_only:
        categories = categories.filter(is_active=True)
    if filters.category_id is not None:
        categories = categories.filter(pk=filters.category_id)
    categories = list(categories.order_by('display_order', 'created_at', 'id'))

    by_category = defaultdict(list)
    for item in items:
        by_category[item.category_id].append(item)

    known = {category.pk for category in categories}
    for item in items:
        if item.category_id not in known:
            categories.append(item.menu_item.category)
            known.add(item.category_id)

    groups = [CategoryGroup(category=c, items=by_category.get(c.pk, [])) for c in categories]
    if filters.exclude_empty:
        groups = [group for group in groups if group.items]
    return groups


def branch_exclusive_items(restaurant, branch):
    """Items effectively available at ``branch`` and at no other live branch of the restaurant."""
    _check_branch(restaurant, branch)
    only_available = MenuFilters(only_available=True)
    here = resolve_menu(restaurant, branch, only_available)

    elsewhere = set()
    others = Branch.objects.filter(restaurant=restaurant, is_deleted=False).exclude(pk=branch.pk)
    for other in others:
        elsewhere.update(item.id for item in resolve_menu(restaurant, other, only_available))

    return [item for item in here if item.id not in elsewhere]
