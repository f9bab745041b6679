"""Role based route guards"""
from rest_framework.permissions import BasePermission

from .models import User


class HasRole(BasePermission):
    """Allow access only to authenticated users whose role is in allowed_roles"""
    allowed_roles = ()
    message = 'Insufficient permissions'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.effective_role in self.allowed_roles


class IsAdminRole(HasRole):
    allowed_roles = (User.ROLE_ADMIN,)


class IsAdminOrShopIncharge(HasRole):
    allowed_roles = (User.ROLE_ADMIN, User.ROLE_SHOP_INCHARGE)
