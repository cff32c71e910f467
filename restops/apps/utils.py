from restops.apps.branches.services import get_branch, get_restaurant
from restops.utils.exceptions import NotFound, ValidationError
from restops.utils.logger import RestOpsLogger

logger = RestOpsLogger(__name__)

BRANCH_HEADER = 'HTTP_X_BRANCH_ID'


def get_restaurant_for_request(request):
    """
    Restaurant the request acts on.
    Super Admin -> ``restaurant_id`` from query/body
    Everyone else -> their own restaurant
    """
    user = request.user
    if getattr(user, 'is_super_admin', False):
        restaurant_id = request.query_params.get('restaurant_id') or _body(request).get('restaurant_id')
        if not restaurant_id:
            raise ValidationError("restaurant_id is required", errors={'restaurant_id': 'Required for super admins'})
        return get_restaurant(restaurant_id)

    if getattr(user, 'restaurant_id', None) is None:
        raise NotFound("Restaurant not found")
    return user.restaurant


def _body(request):
    data = request.data
    return data if hasattr(data, 'get') else {}


def branch_id_for_request(request, explicit=None):
    """``branch_id`` from the URL, the body, the query string or the X-Branch-Id header, in that order."""
    return (
        explicit
        or _body(request).get('branch_id')
        or request.query_params.get('branch_id')
        or request.META.get(BRANCH_HEADER)
        or None
    )


def ensure_can_access_branch(user, branch):
    if not user.has_branch_access(branch):
        logger.warning(f"User {user.email} tried to access branch {branch.pk} without permission")
        raise NotFound("Branch not found")
    return branch


def get_branch_for_request(request, restaurant, explicit=None, required=False):
    """Branch named by the request, checked against the user's access. None when absent and not required."""
    branch_id = branch_id_for_request(request, explicit)
    if branch_id is None:
        if required:
            raise ValidationError("branch_id is required", errors={'branch_id': 'Required'})
        return None
    branch = get_branch(restaurant, branch_id)
    return ensure_can_access_branch(request.user, branch)
