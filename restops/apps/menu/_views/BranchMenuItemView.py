from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from restops.apps.menu.catalog import get_menu_item
from restops.apps.menu.overrides import UNSET, clear_override, list_overrides, set_override
from restops.apps.menu.resolver import resolve_menu
from restops.apps.utils import get_branch_for_request, get_restaurant_for_request
from restops.utils.exceptions import NotFound
from restops.utils.logger import RestOpsLogger
from restops.utils.permissions import IsRestaurantAdmin, IsRestaurantMember

logger = RestOpsLogger(__name__)


def override_payload(override):
    return {
        'id': override.id,
        'menu_item_id': override.menu_item_id,
        'menu_item_name': override.menu_item.name,
        'base_price': str(override.menu_item.price),
        'price_override': str(override.price_override) if override.price_override is not None else None,
        'available': override.available,
    }


class BranchMenuItemView(APIView):
    """
    Branch-level overrides of the restaurant menu:
    - GET: effective menu of the branch plus its override rows
    - PUT: create or update the override for one menu item
    - DELETE: remove the override for one menu item
    """

    def get_permissions(self):
        if self.request.method == 'GET':
            return [IsRestaurantMember()]
        return [IsRestaurantAdmin()]

    def get(self, request, branch_id):
        restaurant = get_restaurant_for_request(request)
        branch = get_branch_for_request(request, restaurant, explicit=branch_id)
        items = resolve_menu(restaurant, branch)
        return Response({
            'branch_id': branch.id,
            'items': [item.as_dict() for item in items],
            'overrides': [override_payload(o) for o in list_overrides(branch)],
        }, status=status.HTTP_200_OK)

    def put(self, request, branch_id, menu_item_id=None):
        if menu_item_id is None:
            raise NotFound("Menu item not found")
        restaurant = get_restaurant_for_request(request)
        branch = get_branch_for_request(request, restaurant, explicit=branch_id)
        menu_item = get_menu_item(restaurant, menu_item_id)

        data = request.data
        override = set_override(
            branch,
            menu_item,
            available=data['available'] if 'available' in data else UNSET,
            price_override=data['price_override'] if 'price_override' in data else UNSET,
        )
        logger.info(f"Override for menu item {menu_item.id} at branch {branch.id} saved by {request.user.email}")
        return Response(override_payload(override), status=status.HTTP_200_OK)

    def delete(self, request, branch_id, menu_item_id=None):
        if menu_item_id is None:
            raise NotFound("Menu item not found")
        restaurant = get_restaurant_for_request(request)
        branch = get_branch_for_request(request, restaurant, explicit=branch_id)
        menu_item = get_menu_item(restaurant, menu_item_id)
        if not clear_override(branch, menu_item):
            raise NotFound("Override not found")
        return Response(status=status.HTTP_204_NO_CONTENT)
