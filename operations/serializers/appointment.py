from rest_framework import serializers

from operations.models import Appointment

from .common import CleanCharField, PageQuerySerializer


class BillItemSerializer(serializers.Serializer):
    description = CleanCharField(max_length=150)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


class DoctorBookSerializer(serializers.Serializer):
    """Booking submitted when the dashboard starts a consultation call."""
    appointment_type = serializers.ChoiceField(choices=[c[0] for c in Appointment.TYPE_CHOICES])
    peer_doctor_id = serializers.CharField(required=False, allow_blank=True)
    patient_id = serializers.CharField(required=False, allow_blank=True)
    appointment_date = serializers.DateField()
    appointment_time = serializers.TimeField()
    duration_minutes = serializers.IntegerField(min_value=5, max_value=240, required=False)
    reason = CleanCharField(max_length=2000)
    consultation_mode = serializers.ChoiceField(
        choices=[c[0] for c in Appointment.MODE_CHOICES], default=Appointment.MODE_VIDEO
    )
    payment_status = serializers.ChoiceField(choices=[c[0] for c in Appointment.PAYMENT_STATUS_CHOICES])
    payment_amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, default=0)
    payment_method = serializers.ChoiceField(choices=['checkout', 'upi', 'cash', 'card'], required=False)
    checkout_order_id = serializers.CharField(max_length=64, required=False, allow_blank=True)
    bill_items = BillItemSerializer(many=True, required=False)

    def validate_reason(self, v):
        if not v:
            raise serializers.ValidationError('Reason is required')
        return v

    def validate(self, attrs):
        kind = attrs['appointment_type']
        if kind == Appointment.TYPE_DOCTOR_TO_DOCTOR and not attrs.get('peer_doctor_id'):
            raise serializers.ValidationError({'peer_doctor_id': 'Select a doctor to consult'})
        if kind == Appointment.TYPE_DOCTOR_TO_PATIENT and not attrs.get('patient_id'):
            raise serializers.ValidationError({'patient_id': 'Select a patient'})
        if attrs['payment_status'] == Appointment.PAYMENT_WAIVED and attrs['payment_amount'] != 0:
            raise serializers.ValidationError({'payment_amount': 'A waived payment must have amount 0'})
        return attrs


class AppointmentListQuerySerializer(PageQuerySerializer):
    status = serializers.ChoiceField(choices=[c[0] for c in Appointment.STATUS_CHOICES], required=False)
    date = serializers.DateField(required=False)
    appointment_type = serializers.ChoiceField(choices=[c[0] for c in Appointment.TYPE_CHOICES], required=False)


class AppointmentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c[0] for c in Appointment.STATUS_CHOICES])


class AppointmentCancelSerializer(serializers.Serializer):
    reason = CleanCharField(max_length=500, required=False, allow_blank=True)
