from ._views.OrderView import OrderView, OrderDetailView, OrderCancelView
from ._views.OrderStatusView import OrderStatusView, OrderPaymentView
from ._views.KitchenQueueView import KitchenQueueView
