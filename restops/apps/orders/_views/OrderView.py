from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from restops.apps.orders.services import cancel_order, create_order, delete_order, get_order
from restops.apps.utils import ensure_can_access_branch, get_branch_for_request, get_restaurant_for_request
from restops.utils.logger import RestOpsLogger
from restops.utils.permissions import IsRestaurantAdmin, IsRestaurantMember

logger = RestOpsLogger(__name__)


def _money(value):
    return str(value) if value is not None else None


def order_payload(order):
    return {
        'id': order.id,
        'order_number': order.order_number,
        'token_number': order.token_number,
        'token_date': order.token_date,
        'restaurant_id': order.restaurant_id,
        'branch_id': order.branch_id,
        'table_id': order.table_id,
        'source': order.source,
        'order_type': order.order_type,
        'status': order.status,
        'payment_method': order.payment_method,
        'subtotal': _money(order.subtotal),
        'discount_amount': _money(order.discount_amount),
        'total': _money(order.total),
        'amount_received': _money(order.amount_received),
        'amount_returned': _money(order.amount_returned),
        'customer_name': order.customer_name,
        'customer_phone': order.customer_phone,
        'delivery_address': order.delivery_address,
        'items': [
            {
                'menu_item_id': item.menu_item_id,
                'name': item.name,
                'quantity': item.quantity,
                'unit_price': _money(item.unit_price),
                'line_total': _money(item.line_total),
            }
            for item in order.items.all()
        ],
        'created_at': order.created_at,
        'paid_at': order.paid_at,
        'cancelled_at': order.cancelled_at,
    }


def order_for_request(request, reference):
    """Order of the caller's restaurant; branch orders also need branch access."""
    restaurant = get_restaurant_for_request(request)
    order = get_order(restaurant, reference)
    if order.branch is not None:
        ensure_can_access_branch(request.user, order.branch)
    return order


class OrderView(APIView):
    permission_classes = [IsRestaurantMember]

    def post(self, request):
        """Place a new order"""
        restaurant = get_restaurant_for_request(request)
        branch = get_branch_for_request(request, restaurant)
        order = create_order(restaurant, request.data, user=request.user, branch=branch)
        logger.info(f"Order {order.order_number} created by {request.user.email} with total {order.total}")
        return Response(order_payload(order), status=status.HTTP_201_CREATED)


class OrderDetailView(APIView):
    """
    - GET: one order by id or order number
    - DELETE: hard delete (restaurant admins only, stock untouched)
    """

    def get_permissions(self):
        if self.request.method == 'DELETE':
            return [IsRestaurantAdmin()]
        return [IsRestaurantMember()]

    def get(self, request, reference):
        order = order_for_request(request, reference)
        return Response(order_payload(order), status=status.HTTP_200_OK)

    def delete(self, request, reference):
        order = order_for_request(request, reference)
        delete_order(order)
        logger.warning(f"Order {reference} deleted by {request.user.email}")
        return Response(status=status.HTTP_204_NO_CONTENT)


class OrderCancelView(APIView):
    permission_classes = [IsRestaurantMember]

    def post(self, request, reference):
        """Cancel an open order and restore its ingredients"""
        order = order_for_request(request, reference)
        order = cancel_order(order, user=request.user)
        return Response(order_payload(order), status=status.HTTP_200_OK)
