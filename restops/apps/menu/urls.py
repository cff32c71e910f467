from django.urls import path

from .views import (
    BranchMenuItemView,
    PublicMenuByCategoryView,
    PublicMenuItemView,
    PublicMenuView,
    PublicRestaurantMenuView,
)

urlpatterns = [
    # public, customer-facing
    path('branch/<int:branch_id>/', PublicMenuView.as_view()),
    path('branch/<int:branch_id>/by-category/', PublicMenuByCategoryView.as_view()),
    path('branch/<int:branch_id>/items/<int:item_id>/', PublicMenuItemView.as_view()),
    path('restaurant/<int:restaurant_id>/', PublicRestaurantMenuView.as_view()),

    # branch overrides
    path('branch-menu/<int:branch_id>/', BranchMenuItemView.as_view()),
    path('branch-menu/<int:branch_id>/<int:menu_item_id>/', BranchMenuItemView.as_view()),
]
