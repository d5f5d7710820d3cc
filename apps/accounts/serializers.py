from django.contrib.auth.signals import user_logged_in
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from core.constants import StaffPermission, StaffRole
from .models import StaffMember, User


class StaffMemberSerializer(serializers.ModelSerializer):
    class Meta:
        model = StaffMember
        fields = ['staff_role', 'permissions']


class UserSerializer(serializers.ModelSerializer):
    staff_profile = StaffMemberSerializer(read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'phone', 'full_name', 'role',
            'is_active', 'created_at', 'updated_at', 'staff_profile',
        ]
        read_only_fields = ['id', 'is_active', 'created_at', 'updated_at', 'staff_profile']


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=8)
    staff_role = serializers.ChoiceField(choices=StaffRole.choices, required=False)
    permissions = serializers.ListField(
        child=serializers.ChoiceField(choices=StaffPermission.choices),
        required=False,
    )

    class Meta:
        model = User
        fields = ['email', 'phone', 'full_name', 'role', 'password', 'staff_role', 'permissions']


class UserUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['email', 'phone', 'full_name', 'role']


class StaffPermissionsSerializer(serializers.Serializer):
    permissions = serializers.ListField(
        child=serializers.ChoiceField(choices=StaffPermission.choices),
        allow_empty=True,
    )


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    JWT login. Emits Django's user_logged_in so the audit trail sees
    token logins the same way as session logins.
    """

    def validate(self, attrs):
        data = super().validate(attrs)
        data['user'] = UserSerializer(self.user).data

        request = self.context.get('request')
        user_logged_in.send(sender=self.user.__class__, request=request, user=self.user)

        return data
