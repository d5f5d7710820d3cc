from django.contrib.auth.signals import user_logged_out
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from apps.accounts import services
from apps.accounts.policy import (
    AllOf,
    AnyOf,
    MinimumRole,
    NotSelf,
    OneOfPermissions,
    OneOfRoles,
    Owner,
    engine,
)
from apps.audit.hooks import audited
from core.constants import AuditActions, AuditEntities, Role, StaffPermission
from core.mixins.policy import PolicyViewMixin

from .models import User
from .serializers import (
    CustomTokenObtainPairSerializer,
    StaffPermissionsSerializer,
    UserCreateSerializer,
    UserSerializer,
    UserUpdateSerializer,
)

MANAGE_USERS = OneOfPermissions(StaffPermission.MANAGE_USERS)
ADMIN = MinimumRole(Role.ADMIN)

# Admin accounts are minted by super admins only
PRIVILEGED_ROLE_GRANT = OneOfRoles(Role.SUPER_ADMIN)


def _self_or_manager(view):
    return AnyOf(Owner(view.kwargs.get("pk")), MANAGE_USERS)


def _admin_not_self(view):
    return AllOf(ADMIN, NotSelf(view.kwargs.get("pk")))


class UserViewSet(PolicyViewMixin, viewsets.ModelViewSet):
    queryset = User.objects.select_related("staff_profile").all()
    serializer_class = UserSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['role', 'is_active']
    search_fields = ['email', 'full_name', 'phone']
    ordering_fields = ['created_at', 'email', 'full_name']

    requirements = {
        "list": MANAGE_USERS,
        "create": MANAGE_USERS,
        "retrieve": _self_or_manager,
        "update": MANAGE_USERS,
        "partial_update": MANAGE_USERS,
        "destroy": _admin_not_self,
        "reactivate": ADMIN,
        "set_permissions": _admin_not_self,
    }

    def get_serializer_class(self):
        if self.action == 'create':
            return UserCreateSerializer
        if self.action in ('update', 'partial_update'):
            return UserUpdateSerializer
        return super().get_serializer_class()

    def _check_role_grant(self, role):
        if role in (Role.ADMIN, Role.SUPER_ADMIN):
            engine.authorize(self.principal_context, PRIVILEGED_ROLE_GRANT)
        elif role is not None:
            engine.authorize(self.principal_context, ADMIN)

    @audited(AuditActions.CREATE, AuditEntities.USERS, lookup_kwarg=None)
    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        role = serializer.validated_data.get('role', Role.PATIENT)
        if role != Role.PATIENT:
            self._check_role_grant(role)

        user = services.create_user(**serializer.validated_data)
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)

    def _check_target_role(self, user):
        """Privileged accounts are only edited by their peers or above."""
        if user.role == Role.SUPER_ADMIN:
            engine.authorize(self.principal_context, PRIVILEGED_ROLE_GRANT)
        elif user.role == Role.ADMIN:
            engine.authorize(self.principal_context, ADMIN)

    @audited(AuditActions.UPDATE, AuditEntities.USERS)
    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        user = self.get_object()
        self._check_target_role(user)
        serializer = self.get_serializer(user, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        role = serializer.validated_data.get('role')
        if role is not None and role != user.role:
            self._check_role_grant(role)

        user = services.update_user(user, **serializer.validated_data)
        return Response(UserSerializer(user).data)

    @audited(AuditActions.DELETE, AuditEntities.USERS)
    def destroy(self, request, *args, **kwargs):
        """Deactivate. Users are never hard-deleted through the API."""
        user = services.deactivate_user(self.get_object())
        return Response(UserSerializer(user).data)

    @action(detail=True, methods=['post'])
    @audited(AuditActions.UPDATE, AuditEntities.USERS)
    def reactivate(self, request, pk=None):
        user = services.reactivate_user(self.get_object())
        return Response(UserSerializer(user).data)

    @action(detail=True, methods=["put"], url_path="permissions")
    @audited(AuditActions.UPDATE, AuditEntities.STAFF_MEMBERS)
    def set_permissions(self, request, pk=None):
        serializer = StaffPermissionsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        staff = services.set_staff_permissions(self.get_object(), serializer.validated_data['permissions'])
        return Response({'user_id': staff.user_id, 'permissions': staff.permissions})

    @action(detail=False, methods=['get'])
    def me(self, request):
        """Get current user profile"""
        return Response(UserSerializer(request.user).data)


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class LogoutView(PolicyViewMixin, APIView):
    """
    Stateless JWT logout: the client discards its tokens, the server
    records the event.
    """

    def post(self, request):
        user_logged_out.send(sender=request.user.__class__, request=request, user=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)
