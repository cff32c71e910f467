from restops.apps.menu.models import BranchMenuItem
from restops.apps.menu.schemas import OverrideRequest
from restops.utils.exceptions import NotFound
from restops.utils.logger import RestOpsLogger
from restops.utils.schemas import parse_payload

logger = RestOpsLogger(__name__)

UNSET = object()


def _check_ownership(branch, menu_item):
    if menu_item.restaurant_id != branch.restaurant_id:
        raise NotFound("Menu item not found")
    if menu_item.branch_id is not None and menu_item.branch_id != branch.pk:
        raise NotFound("Menu item not found")


def set_override(branch, menu_item, available=UNSET, price_override=UNSET):
    """
    Create or update the branch's override row. Fields left UNSET keep their
    stored value (or the model default on creation).

    Values are checked against OverrideRequest, so a bad price or a non-boolean
    availability is a ValidationError.
    """
    _check_ownership(branch, menu_item)

    given = {}
    if available is not UNSET:
        given['available'] = available
    if price_override is not UNSET:
        given['price_override'] = price_override
    cleaned = parse_payload(OverrideRequest, given, "Invalid override")
    values = {field: getattr(cleaned, field) for field in cleaned.model_fields_set}

    override, created = BranchMenuItem.objects.update_or_create(
        branch=branch, menu_item=menu_item, defaults=values,
    )
    logger.info(
        f"{'Created' if created else 'Updated'} override of menu item {menu_item.pk} at branch {branch.pk}: {values}"
    )
    return override


def set_branch_price(branch, menu_item, price_override):
    return set_override(branch, menu_item, price_override=price_override)


def set_branch_availability(branch, menu_item, available):
    return set_override(branch, menu_item, available=available)


def clear_override(branch, menu_item):
    """Drop the override; the branch falls back to the catalog values. Returns whether a row existed."""
    _check_ownership(branch, menu_item)
    deleted, _ = BranchMenuItem.objects.filter(branch=branch, menu_item=menu_item).delete()
    if deleted:
        logger.info(f"Cleared override of menu item {menu_item.pk} at branch {branch.pk}")
    return bool(deleted)


def list_overrides(branch):
    return list(
        BranchMenuItem.objects.filter(branch=branch)
        .select_related('menu_item', 'menu_item__category')
        .order_by('menu_item__name')
    )
