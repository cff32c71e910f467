from django.urls import path

from .views import (
    KitchenQueueView,
    OrderCancelView,
    OrderDetailView,
    OrderPaymentView,
    OrderStatusView,
    OrderView,
)

urlpatterns = [
    path('', OrderView.as_view()),
    path('kitchen/', KitchenQueueView.as_view()),
    path('<str:reference>/', OrderDetailView.as_view()),
    path('<str:reference>/cancel/', OrderCancelView.as_view()),
    path('<str:reference>/status/', OrderStatusView.as_view()),
    path('<str:reference>/payment/', OrderPaymentView.as_view()),
]
