from rest_framework import serializers
from ..models import Feedback


class FeedbackSerializer(serializers.ModelSerializer):
    class Meta:
        model = Feedback
        fields = ['id', 'message', 'rating', 'created_at']
        read_only_fields = ['created_at']

    def validate_message(self, value):
        if not value.strip():
            raise serializers.ValidationError("Message cannot be blank")
        return value.strip()
