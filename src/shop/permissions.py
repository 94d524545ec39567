from rest_framework.permissions import SAFE_METHODS, BasePermission, IsAuthenticated


class IsAdmin(IsAuthenticated):
    def has_permission(self, request, view):
        return bool(
            super().has_permission(request, view) and
            request.user.is_staff)


class IsAdminOrReadOnly(BasePermission):
    """
    Anyone may read, only staff may write. Unauthenticated writes get 401
    through the authentication classes, not 403.
    """

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return bool(
            request.user and request.user.is_authenticated and
            request.user.is_staff)


class IsDraftOwnerOrAdmin(IsAuthenticated):
    """
    Product drafts are editable by whoever created them and by staff.
    """

    def has_object_permission(self, request, view, obj):
        return bool(
            request.user.is_staff or obj.created_by_id == request.user.pk)
