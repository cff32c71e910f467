from django.urls import path

from .views import StockView, BranchInventoryCopyView

urlpatterns = [
    path('stock/', StockView.as_view()),
    path('stock/<int:item_id>/', StockView.as_view()),
    path('branch-copy/', BranchInventoryCopyView.as_view()),
]
