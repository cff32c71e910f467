from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from restops.apps.branches.services import get_branch, restore_branch, soft_delete_branch
from restops.apps.utils import ensure_can_access_branch, get_restaurant_for_request
from restops.utils.logger import RestOpsLogger
from restops.utils.permissions import IsRestaurantAdmin

logger = RestOpsLogger(__name__)


def branch_payload(branch):
    return {
        'id': branch.id,
        'name': branch.name,
        'code': branch.code,
        'status': branch.status,
        'is_deleted': branch.is_deleted,
        'deleted_at': branch.deleted_at,
    }


class BranchView(APIView):
    """
    - DELETE: soft delete a branch (restorable for a limited window)

    Protected: restaurant admins only
    """
    permission_classes = [IsRestaurantAdmin]

    def delete(self, request, branch_id):
        restaurant = get_restaurant_for_request(request)
        branch = ensure_can_access_branch(request.user, get_branch(restaurant, branch_id))
        soft_delete_branch(branch)
        logger.info(f"Branch {branch.id} deleted by {request.user.email}")
        return Response(branch_payload(branch), status=status.HTTP_200_OK)


class BranchRestoreView(APIView):
    permission_classes = [IsRestaurantAdmin]

    def post(self, request, branch_id):
        """Restore a soft-deleted branch"""
        restaurant = get_restaurant_for_request(request)
        branch = ensure_can_access_branch(request.user, get_branch(restaurant, branch_id, include_deleted=True))
        restore_branch(branch)
        logger.info(f"Branch {branch.id} restored by {request.user.email}")
        return Response(branch_payload(branch), status=status.HTTP_200_OK)
