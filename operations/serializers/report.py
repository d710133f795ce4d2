from rest_framework import serializers

from operations.models import Report

from .common import CleanCharField


class PrescriptionItemSerializer(serializers.Serializer):
    name = CleanCharField(max_length=150, allow_blank=True)
    dosage = CleanCharField(max_length=100, allow_blank=True)
    frequency = CleanCharField(max_length=100, required=False, allow_blank=True)
    duration = CleanCharField(max_length=100, required=False, allow_blank=True)
    instructions = CleanCharField(max_length=255, required=False, allow_blank=True)


class ReportCreateSerializer(serializers.Serializer):
    patient_id = serializers.IntegerField(min_value=1)
    report_type = serializers.ChoiceField(choices=[c[0] for c in Report.TYPE_CHOICES])
    title = CleanCharField(max_length=255)
    chief_complaint = CleanCharField(required=False, allow_blank=True)
    diagnosis = CleanCharField(allow_blank=True)
    findings = CleanCharField(required=False, allow_blank=True)
    treatment = CleanCharField(required=False, allow_blank=True)
    advice = CleanCharField(required=False, allow_blank=True)
    notes = CleanCharField(required=False, allow_blank=True)
    follow_up_date = serializers.DateField(required=False, allow_null=True)
    prescription_items = PrescriptionItemSerializer(many=True, required=False)

    def validate_title(self, v):
        if not v:
            raise serializers.ValidationError('Title is required')
        return v

    def validate_diagnosis(self, v):
        if not v:
            raise serializers.ValidationError('Diagnosis is required')
        return v

    def validate(self, attrs):
        # Blank rows left in the form are dropped; a half filled row is an error.
        items = [i for i in attrs.get('prescription_items', []) if i.get('name') or i.get('dosage')]
        for item in items:
            if not (item.get('name') and item.get('dosage')):
                raise serializers.ValidationError(
                    {'prescription_items': 'Each medicine needs a name and a dosage'}
                )
        if attrs['report_type'] == Report.TYPE_PRESCRIPTION and not items:
            raise serializers.ValidationError(
                {'prescription_items': 'Add at least one medicine with name and dosage'}
            )
        attrs['prescription_items'] = items
        return attrs


class ReportListQuerySerializer(serializers.Serializer):
    patient_id = serializers.CharField(required=False)
    report_type = serializers.ChoiceField(choices=[c[0] for c in Report.TYPE_CHOICES], required=False)
