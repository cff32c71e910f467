from django.urls import include, path

urlpatterns = [
    path('branches/', include('restops.apps.branches.urls')),
    path('menu/', include('restops.apps.menu.urls')),
    path('inventory/', include('restops.apps.inventory.urls')),
    path('orders/', include('restops.apps.orders.urls')),
]
