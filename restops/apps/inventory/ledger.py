"""
Inventory ledger.

Stock lives either on the ingredient definition (restaurants without branches) or
on a BranchInventory row. A StockSource hides which one a request is talking to;
every mutation is a single UPDATE on one key using F() expressions.
"""

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal

from django.db import models, transaction
from django.db.models import F, Value
from django.db.models.functions import Greatest

from restops.apps.inventory.models import BranchInventory, InventoryItem
from restops.utils.exceptions import ConflictError, InsufficientStock, NotFound, Shortfall, ValidationError
from restops.utils.logger import RestOpsLogger

logger = RestOpsLogger(__name__)

ZERO = Decimal('0')
STOCK_FIELD = models.DecimalField(max_digits=12, decimal_places=3)


@dataclass(frozen=True)
class StockPolicy:
    allow_order_when_out_of_stock: bool = False

    @classmethod
    def for_restaurant(cls, restaurant):
        return cls(allow_order_when_out_of_stock=bool(restaurant.allow_order_when_out_of_stock))


class StockSource:
    """Where stock is read from and written to for one request."""

    key_field = 'pk'

    def __init__(self, restaurant):
        self.restaurant = restaurant

    def queryset(self):
        raise NotImplementedError

    def describe(self):
        raise NotImplementedError

    def _rows(self, item_id):
        return self.queryset().filter(**{self.key_field: item_id})

    def levels(self, item_ids):
        """Current stock per inventory item id. Items without a stock row are left out."""
        rows = self.queryset().filter(**{f'{self.key_field}__in': list(item_ids)})
        return {key: stock for key, stock in rows.values_list(self.key_field, 'current_stock')}

    def level(self, item_id):
        return self.levels([item_id]).get(item_id)

    def deduct(self, item_id, quantity):
        """Guarded decrement. False when the row is missing or holds less than ``quantity``."""
        updated = self._rows(item_id).filter(current_stock__gte=quantity).update(
            current_stock=F('current_stock') - quantity
        )
        return updated == 1

    def locked_levels(self, item_ids):
        """Like levels(), but the rows stay locked until the surrounding transaction ends."""
        rows = (
            self.queryset()
            .select_for_update(of=('self',))
            .filter(**{f'{self.key_field}__in': list(item_ids)})
            .order_by(self.key_field)
        )
        return {key: stock for key, stock in rows.values_list(self.key_field, 'current_stock')}

    def add(self, item_id, quantity):
        updated = self._rows(item_id).update(current_stock=F('current_stock') + quantity)
        return updated == 1

    def adjust(self, inventory_item, delta):
        return self._rows(inventory_item.pk).update(
            current_stock=Greatest(F('current_stock') + delta, Value(ZERO), output_field=STOCK_FIELD)
        )


class RestaurantScopedStock(StockSource):
    """Legacy restaurant-level stock held on InventoryItem.current_stock."""

    key_field = 'pk'

    def queryset(self):
        return InventoryItem.objects.filter(restaurant=self.restaurant)

    def describe(self):
        return f"restaurant {self.restaurant.pk}"


class BranchScopedStock(StockSource):
    """Per-branch stock held on BranchInventory rows."""

    key_field = 'inventory_item_id'

    def __init__(self, restaurant, branch):
        super().__init__(restaurant)
        self.branch = branch

    def queryset(self):
        return BranchInventory.objects.filter(branch=self.branch, inventory_item__restaurant=self.restaurant)

    def describe(self):
        return f"branch {self.branch.pk}"

    def adjust(self, inventory_item, delta):
        BranchInventory.objects.get_or_create(
            branch=self.branch,
            inventory_item=inventory_item,
            defaults={
                'current_stock': ZERO,
                'low_stock_threshold': inventory_item.low_stock_threshold,
                'cost_price': inventory_item.cost_price,
            },
        )
        return super().adjust(inventory_item, delta)


def stock_source_for(restaurant, branch=None):
    if branch is not None:
        return BranchScopedStock(restaurant, branch)
    return RestaurantScopedStock(restaurant)


def aggregate_requirements(lines):
    """
    Sum ingredient consumption over order lines.

    ``lines`` yields ``(recipe, quantity)`` pairs where recipe is a list of
    ``(inventory_item_id, quantity_per_unit)``. Returns {inventory_item_id: Decimal}.
    """
    required = defaultdict(lambda: ZERO)
    for recipe, quantity in lines:
        for item_id, per_unit in recipe:
            required[int(item_id)] += Decimal(str(per_unit)) * quantity
    return {item_id: qty for item_id, qty in required.items() if qty > 0}


def _item_names(restaurant, item_ids):
    return dict(InventoryItem.objects.filter(restaurant=restaurant, pk__in=item_ids).values_list('pk', 'name'))


def find_shortfalls(source, required):
    """Every ingredient whose stock does not cover ``required``. Missing rows count as zero."""
    levels = source.levels(required.keys())
    names = _item_names(source.restaurant, required.keys())
    shortfalls = []
    for item_id in sorted(required):
        available = levels.get(item_id, ZERO)
        if required[item_id] > available:
            shortfalls.append(Shortfall(
                inventory_item_id=item_id,
                name=names.get(item_id, f"#{item_id}"),
                required=required[item_id],
                available=available,
            ))
    return shortfalls


class _GuardFailed(Exception):
    def __init__(self, item_id):
        super().__init__(item_id)
        self.item_id = item_id


def check_and_deduct(source, required, policy):
    """
    Deduct every quantity in ``required`` or nothing at all.

    Raises InsufficientStock listing each short ingredient. With
    ``policy.allow_order_when_out_of_stock`` stock is deducted regardless and
    floors at zero. Keys are touched in ascending id order.

    Returns {inventory_item_id: Decimal} of what was actually taken, which is
    what restore() must put back.
    """
    if not required:
        return {}

    log = logger.bind(restaurant=source.restaurant.pk, source=source.describe())

    if policy.allow_order_when_out_of_stock:
        return _deduct_floored(source, required, log)

    shortfalls = find_shortfalls(source, required)
    if shortfalls:
        log.warning(f"Rejected deduction, short on {[s.name for s in shortfalls]}")
        raise InsufficientStock(shortfalls)

    try:
        with transaction.atomic():
            for item_id in sorted(required):
                if not source.deduct(item_id, required[item_id]):
                    raise _GuardFailed(item_id)
    except _GuardFailed as failed:
        # drained between the read above and the guarded update
        shortfalls = find_shortfalls(source, required)
        if not shortfalls:
            item_id = failed.item_id
            shortfalls = [Shortfall(
                inventory_item_id=item_id,
                name=_item_names(source.restaurant, [item_id]).get(item_id, f"#{item_id}"),
                required=required[item_id],
                available=source.level(item_id) or ZERO,
            )]
        log.warning(f"Concurrent deduction drained inventory item {failed.item_id}, rolled back")
        raise InsufficientStock(shortfalls)

    log.info(f"Deducted {len(required)} ingredient(s)")
    return dict(required)


def _deduct_floored(source, required, log):
    taken = {}
    with transaction.atomic():
        levels = source.locked_levels(required.keys())
        for item_id in sorted(required):
            available = levels.get(item_id)
            if available is None:
                log.warning(f"No stock row for inventory item {item_id}, skipped")
                taken[item_id] = ZERO
                continue
            quantity = min(available, required[item_id])
            if quantity > 0 and not source.deduct(item_id, quantity):
                raise ConflictError(f"Stock for inventory item {item_id} changed while locked")
            taken[item_id] = quantity
    short = [item_id for item_id in taken if taken[item_id] < required[item_id]]
    log.info(f"Deducted {len(required)} ingredient(s) with out-of-stock orders allowed, {len(short)} floored at zero")
    return taken


def restore(source, required):
    """Add ``required`` back. Call at most once per order."""
    log = logger.bind(restaurant=source.restaurant.pk, source=source.describe())
    with transaction.atomic():
        for item_id in sorted(required):
            if not source.add(item_id, required[item_id]):
                log.warning(f"No stock row for inventory item {item_id}, nothing restored")
    log.info(f"Restored {len(required)} ingredient(s)")


def adjust_stock(source, inventory_item, delta):
    """Manual adjustment by ``delta`` (may be negative). Stock floors at zero. Returns the new level."""
    if inventory_item.restaurant_id != source.restaurant.pk:
        raise NotFound("Inventory item not found")

    delta = Decimal(str(delta))
    with transaction.atomic():
        source.adjust(inventory_item, delta)
    level = source.level(inventory_item.pk)
    logger.bind(restaurant=source.restaurant.pk, source=source.describe()).info(
        f"Adjusted {inventory_item.name} by {delta}, now {level}"
    )
    return level


def _is_low(stock, threshold):
    return threshold > 0 and stock <= threshold


def stock_report(restaurant, branch=None):
    """Ingredient definitions merged with the branch's stock rows (or the legacy stock without a branch)."""
    items = InventoryItem.objects.filter(restaurant=restaurant)
    if branch is None:
        items = items.filter(branch__isnull=True)
    else:
        items = items.filter(models.Q(branch__isnull=True) | models.Q(branch=branch))

    rows = {}
    if branch is not None:
        rows = {
            row.inventory_item_id: row
            for row in BranchInventory.objects.filter(branch=branch, inventory_item__in=items)
        }

    report = []
    for item in items.order_by('name'):
        row = rows.get(item.pk)
        if branch is None:
            stock, threshold, cost = item.current_stock, item.low_stock_threshold, item.cost_price
        elif row is not None:
            stock, threshold, cost = row.current_stock, row.low_stock_threshold, row.cost_price
        else:
            stock, threshold, cost = ZERO, item.low_stock_threshold, item.cost_price
        report.append({
            'id': item.pk,
            'name': item.name,
            'unit': item.unit,
            'current_stock': stock,
            'low_stock_threshold': threshold,
            'cost_price': cost,
            'has_branch_record': row is not None,
            'is_low_stock': _is_low(stock, threshold),
        })
    return report


def copy_branch_inventory(source_branch, target_branch, item_ids=None):
    """Create zero-stock rows at ``target_branch`` for items stocked at ``source_branch``. Returns the count created."""
    if source_branch.restaurant_id != target_branch.restaurant_id:
        raise ValidationError("Branches belong to different restaurants", errors={'target_branch': 'Unknown branch'})
    if source_branch.pk == target_branch.pk:
        raise ValidationError("Source and target branch are the same", errors={'target_branch': 'Must differ from source'})

    rows = BranchInventory.objects.filter(branch=source_branch).select_related('inventory_item')
    if item_ids:
        rows = rows.filter(inventory_item_id__in=item_ids)

    created = 0
    with transaction.atomic():
        for row in rows:
            _, was_created = BranchInventory.objects.get_or_create(
                branch=target_branch,
                inventory_item=row.inventory_item,
                defaults={
                    'current_stock': ZERO,
                    'low_stock_threshold': row.low_stock_threshold,
                    'cost_price': row.cost_price,
                },
            )
            created += int(was_created)

    logger.info(f"Copied {created} inventory item(s) from branch {source_branch.pk} to {target_branch.pk}")
    return created
