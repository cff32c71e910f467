from datetime import timedelta

from django.utils import timezone

from restops.apps.branches.models import Branch, Restaurant
from restops.conf import engine_setting
from restops.utils.exceptions import NotFound, StateError
from restops.utils.logger import RestOpsLogger

logger = RestOpsLogger(__name__)


def get_restaurant(restaurant_id):
    try:
        return Restaurant.objects.get(pk=restaurant_id)
    except (Restaurant.DoesNotExist, ValueError, TypeError):
        raise NotFound("Restaurant not found")


def get_branch(restaurant, branch_id, include_deleted=False):
    """Fetch a branch owned by ``restaurant``; anything else is reported as not found."""
    queryset = Branch.objects.select_related('restaurant').filter(restaurant=restaurant)
    if not include_deleted:
        queryset = queryset.filter(is_deleted=False)
    try:
        return queryset.get(pk=branch_id)
    except (Branch.DoesNotExist, ValueError, TypeError):
        raise NotFound("Branch not found")


def live_branches(restaurant):
    return Branch.objects.filter(restaurant=restaurant, is_deleted=False).order_by('sort_order', 'created_at', 'id')


def branch_index(restaurant, branch):
    """1-based position of ``branch`` among the restaurant's live branches; 1 without a branch."""
    if branch is None:
        return 1
    ids = list(live_branches(restaurant).values_list('id', flat=True))
    try:
        return ids.index(branch.id) + 1
    except ValueError:
        return 1


def restore_window():
    return timedelta(hours=engine_setting('BRANCH_RESTORE_WINDOW_HOURS'))


def soft_delete_branch(branch, now=None):
    if branch.is_deleted:
        raise StateError("Branch is already deleted", current_status=branch.status)

    branch.status = Branch.STATUS_INACTIVE
    branch.is_deleted = True
    branch.deleted_at = now or timezone.now()
    branch.save(update_fields=['status', 'is_deleted', 'deleted_at', 'updated_at'])
    logger.info(f"Branch {branch.id} of restaurant {branch.restaurant_id} soft deleted")
    return branch


def restore_branch(branch, now=None):
    """Undo a soft delete. Only allowed inside the restore window."""
    if not branch.is_deleted or branch.deleted_at is None:
        raise StateError("Branch is not deleted", current_status=branch.status)

    now = now or timezone.now()
    if now - branch.deleted_at > restore_window():
        logger.warning(f"Restore window expired for branch {branch.id} (deleted at {branch.deleted_at})")
        raise StateError("Restore window has expired for this branch", current_status=branch.status)

    branch.is_deleted = False
    branch.deleted_at = None
    branch.status = Branch.STATUS_ACTIVE
    branch.save(update_fields=['status', 'is_deleted', 'deleted_at', 'updated_at'])
    logger.info(f"Branch {branch.id} of restaurant {branch.restaurant_id} restored")
    return branch
