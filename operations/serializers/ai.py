from rest_framework import serializers

from .common import CleanCharField


class DiagnoseSerializer(serializers.Serializer):
    symptoms = CleanCharField(max_length=5000, allow_blank=True)
    patient_id = serializers.CharField(required=False, allow_blank=True)

    def validate_symptoms(self, v):
        if not v:
            raise serializers.ValidationError('Symptoms are required')
        return v
