from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from restops.apps.branches.models import Branch
from restops.apps.branches.services import get_restaurant
from restops.apps.menu.resolver import MenuFilters, resolve_menu, resolve_menu_by_category, resolve_menu_item
from restops.utils.exceptions import NotFound
from restops.utils.logger import RestOpsLogger

logger = RestOpsLogger(__name__)


def _public_branch(branch_id):
    try:
        branch = Branch.objects.select_related('restaurant').get(pk=branch_id, is_deleted=False)
    except Branch.DoesNotExist:
        raise NotFound("Branch not found")
    if branch.status == Branch.STATUS_INACTIVE:
        raise NotFound("Branch not found")
    return branch


def _public_filters(request, **extra):
    category_id = request.query_params.get('category_id')
    return MenuFilters(
        show_on_website=True,
        only_available=True,
        active_categories_only=True,
        category_id=int(category_id) if category_id and category_id.isdigit() else None,
        **extra,
    )


class PublicMenuView(APIView):
    """
    Customer-facing effective menu. Only items shown on the website and
    currently available are listed.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, branch_id):
        branch = _public_branch(branch_id)
        items = resolve_menu(branch.restaurant, branch, _public_filters(request))
        return Response({
            'branch_id': branch.id,
            'branch_name': branch.name,
            'items': [item.as_dict() for item in items],
        }, status=status.HTTP_200_OK)


class PublicMenuByCategoryView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, branch_id):
        branch = _public_branch(branch_id)
        groups = resolve_menu_by_category(branch.restaurant, branch, _public_filters(request, exclude_empty=True))
        return Response({
            'branch_id': branch.id,
            'categories': [group.as_dict() for group in groups],
        }, status=status.HTTP_200_OK)


class PublicMenuItemView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, branch_id, item_id):
        branch = _public_branch(branch_id)
        item = resolve_menu_item(branch.restaurant, item_id, branch, _public_filters(request))
        if item is None:
            raise NotFound("Menu item not found")
        return Response(item.as_dict(), status=status.HTTP_200_OK)


class PublicRestaurantMenuView(APIView):
    """Menu of a restaurant that runs without branches."""
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, restaurant_id):
        restaurant = get_restaurant(restaurant_id)
        items = resolve_menu(restaurant, None, _public_filters(request))
        return Response({
            'restaurant_id': restaurant.id,
            'items': [item.as_dict() for item in items],
        }, status=status.HTTP_200_OK)
