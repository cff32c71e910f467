from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from restops.apps.branches.services import get_branch
from restops.apps.inventory.catalog import get_inventory_item
from restops.apps.inventory.ledger import adjust_stock, copy_branch_inventory, stock_report, stock_source_for
from restops.apps.inventory.schemas import BranchInventoryCopy, StockAdjustment
from restops.apps.utils import ensure_can_access_branch, get_branch_for_request, get_restaurant_for_request
from restops.utils.exceptions import NotFound
from restops.utils.logger import RestOpsLogger
from restops.utils.permissions import IsRestaurantAdmin, IsRestaurantMember
from restops.utils.schemas import parse_payload

logger = RestOpsLogger(__name__)


def _stock_row(row):
    return {
        **row,
        'current_stock': str(row['current_stock']),
        'low_stock_threshold': str(row['low_stock_threshold']),
        'cost_price': str(row['cost_price']),
    }


class StockView(APIView):
    """
    - GET: stock report (``branch_id`` optional)
    - PATCH: manual adjustment of one ingredient by ``delta``
    """
    permission_classes = [IsRestaurantMember]

    def get(self, request, item_id=None):
        restaurant = get_restaurant_for_request(request)
        branch = get_branch_for_request(request, restaurant)
        report = stock_report(restaurant, branch)
        if item_id is not None:
            report = [row for row in report if row['id'] == item_id]
            if not report:
                raise NotFound("Inventory item not found")
        return Response({
            'branch_id': branch.id if branch else None,
            'items': [_stock_row(row) for row in report],
            'low_stock_count': sum(1 for row in report if row['is_low_stock']),
        }, status=status.HTTP_200_OK)

    def patch(self, request, item_id):
        adjustment = parse_payload(StockAdjustment, request.data, "Invalid stock adjustment")
        restaurant = get_restaurant_for_request(request)
        branch = get_branch_for_request(request, restaurant, explicit=adjustment.branch_id)
        item = get_inventory_item(restaurant, item_id)

        level = adjust_stock(stock_source_for(restaurant, branch), item, adjustment.delta)
        logger.info(
            f"Stock of {item.name} adjusted by {adjustment.delta} by {request.user.email}"
            f"{f' ({adjustment.reason})' if adjustment.reason else ''}"
        )
        return Response({
            'id': item.id,
            'name': item.name,
            'branch_id': branch.id if branch else None,
            'current_stock': str(level),
        }, status=status.HTTP_200_OK)


class BranchInventoryCopyView(APIView):
    permission_classes = [IsRestaurantAdmin]

    def post(self, request):
        """Create zero-stock rows at the target branch for ingredients stocked at the source branch"""
        body = parse_payload(BranchInventoryCopy, request.data, "Invalid inventory copy")
        restaurant = get_restaurant_for_request(request)
        source = ensure_can_access_branch(request.user, get_branch(restaurant, body.source_branch_id))
        target = ensure_can_access_branch(request.user, get_branch(restaurant, body.target_branch_id))
        created = copy_branch_inventory(source, target, body.item_ids)
        return Response({'created': created}, status=status.HTTP_201_CREATED)
