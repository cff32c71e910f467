from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from restops.apps.orders._views.OrderView import order_payload
from restops.apps.orders.services import kitchen_queue
from restops.apps.utils import get_branch_for_request, get_restaurant_for_request
from restops.utils.permissions import IsRestaurantMember


class KitchenQueueView(APIView):
    """Open orders grouped by status for the kitchen display"""
    permission_classes = [IsRestaurantMember]

    def get(self, request):
        restaurant = get_restaurant_for_request(request)
        branch = get_branch_for_request(request, restaurant)
        queue = kitchen_queue(restaurant, branch)
        return Response({
            order_status: [order_payload(order) for order in orders]
            for order_status, orders in queue.items()
        }, status=status.HTTP_200_OK)
