# users/serializers.py

from rest_framework import serializers

from permissions.roles import effective_capabilities_for


class MeSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    email = serializers.EmailField()
    username = serializers.CharField()
    first_name = serializers.CharField(allow_blank=True)
    last_name = serializers.CharField(allow_blank=True)
    full_name = serializers.CharField()
    role = serializers.CharField()
    company_id = serializers.UUIDField(allow_null=True)
    business_unit_id = serializers.UUIDField(allow_null=True)
    van_warehouse_id = serializers.UUIDField(allow_null=True)
    capabilities = serializers.SerializerMethodField()

    def get_capabilities(self, user) -> list[str]:
        return sorted(effective_capabilities_for(user))
