from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from restops.apps.orders._views.OrderView import order_for_request, order_payload
from restops.apps.orders.schemas import PaymentRequest, StatusUpdate
from restops.apps.orders.services import record_payment, update_status
from restops.utils.logger import RestOpsLogger
from restops.utils.permissions import IsRestaurantMember
from restops.utils.schemas import parse_payload

logger = RestOpsLogger(__name__)


class OrderStatusView(APIView):
    permission_classes = [IsRestaurantMember]

    def put(self, request, reference):
        body = parse_payload(StatusUpdate, request.data, "Invalid status")
        order = order_for_request(request, reference)
        order = update_status(order, body.status)
        logger.info(f"Order {order.order_number} set to {order.status} by {request.user.email}")
        return Response(order_payload(order), status=status.HTTP_200_OK)


class OrderPaymentView(APIView):
    permission_classes = [IsRestaurantMember]

    def put(self, request, reference):
        body = parse_payload(PaymentRequest, request.data, "Invalid payment")
        order = order_for_request(request, reference)
        order = record_payment(order, body.payment_method, body.amount_received, body.amount_returned)
        return Response(order_payload(order), status=status.HTTP_200_OK)
