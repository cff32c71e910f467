from rest_framework.permissions import BasePermission

from restops.utils.logger import RestOpsLogger

logger = RestOpsLogger(__name__)


class IsAuthenticatedAndActive(BasePermission):
    """
    Allows access only to authenticated and active users.
    """
    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            logger.warning("Unauthenticated user tried to access protected resource")
            return False
        if not request.user.is_active:
            logger.warning(f"Inactive user {request.user.email} tried to access protected resource")
            return False
        return True


class IsRestaurantMember(IsAuthenticatedAndActive):
    """
    Super admins, restaurant admins and staff of a restaurant.
    """
    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        user = request.user
        if user.is_super_admin:
            return True
        if user.restaurant_id is None:
            logger.warning(f"User {user.email} has no restaurant")
            return False
        return user.is_restaurant_admin or user.is_staff_member


class IsRestaurantAdmin(IsAuthenticatedAndActive):
    """
    Allows access only to restaurant admins (and super admins).
    """
    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        if request.user.is_super_admin or request.user.is_restaurant_admin:
            return True
        logger.warning(f"User {request.user.email} tried to access restaurant admin resource")
        return False
