from rest_framework import serializers
from django.contrib.auth.models import Group
from django.contrib.auth.password_validation import validate_password
from .models import User, AuditLog
from .roles import role_resolver


class UserSerializer(serializers.ModelSerializer):
    """User with application groups and the capabilities they resolve to"""
    groups = serializers.SerializerMethodField()
    capabilities = serializers.SerializerMethodField()
    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone', 'is_active',
                  'groups', 'capabilities', 'display_name', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_groups(self, obj):
        return role_resolver.application_groups(obj)

    def get_capabilities(self, obj):
        return sorted(c.value for c in role_resolver.resolve(obj))

    def get_display_name(self, obj):
        # Console header shows the mailbox name
        return (obj.email or '').split('@')[0] or obj.username


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)
    group = serializers.ChoiceField(choices=[], required=False, write_only=True)

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'first_name', 'last_name', 'phone', 'group']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['group'].choices = list(role_resolver.group_capabilities)

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        group_name = validated_data.pop('group', None)
        user = User.objects.create(**validated_data, is_active=True)
        user.set_password(password)
        user.save()
        if group_name:
            group, _ = Group.objects.get_or_create(name=group_name)
            user.groups.add(group)
        return user


class AuditLogSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ['id', 'username', 'action', 'model_name', 'object_id', 'object_name',
                  'object_reference', 'changes', 'ip_address', 'created_at']
