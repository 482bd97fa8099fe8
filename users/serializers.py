# ==================== USERS/SERIALIZERS.PY ====================
from rest_framework import serializers
from .models import CustomUser


class UserSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = CustomUser
        fields = ['id', 'username', 'first_name', 'last_name', 'user_type']
        read_only_fields = fields
