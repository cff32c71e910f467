from django.urls import path

from .views import BranchView, BranchRestoreView

urlpatterns = [
    path('<int:branch_id>/', BranchView.as_view()),
    path('<int:branch_id>/restore/', BranchRestoreView.as_view()),
]
