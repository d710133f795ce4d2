from rest_framework import serializers

from operations.models import Payment

from .appointment import BillItemSerializer
from .common import CleanCharField, PageQuerySerializer


class CreateOrderSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=1)
    payment_type = serializers.ChoiceField(choices=list(Payment.CHECKOUT_KINDS) + [Payment.KIND_PEER_CONSULTATION])
    appointment_id = serializers.IntegerField(min_value=1, required=False)
    patient_id = serializers.IntegerField(min_value=1, required=False)
    description = CleanCharField(max_length=255, required=False, allow_blank=True)


class VerifyPaymentSerializer(serializers.Serializer):
    order_id = serializers.CharField(max_length=64)
    payment_id = serializers.CharField(max_length=64)
    signature = serializers.CharField(max_length=128, required=False, allow_blank=True)


class RecordPaymentSerializer(serializers.Serializer):
    """A manually collected payment (cash, UPI screenshot, hospital fees)."""
    kind = serializers.ChoiceField(choices=[
        Payment.KIND_HOSPITAL_FEE, Payment.KIND_PATIENT_CONSULTATION, 'consultation', 'bed',
        'medicine', 'lab_test', 'registration',
    ])
    payer_name = CleanCharField(max_length=150, required=False, allow_blank=True)
    patient_id = serializers.IntegerField(min_value=1, required=False)
    method = serializers.ChoiceField(choices=['upi', 'cash', 'card'], default='cash')
    status = serializers.ChoiceField(choices=[Payment.STATUS_COMPLETED, Payment.STATUS_PENDING],
                                     default=Payment.STATUS_COMPLETED)
    description = CleanCharField(max_length=255, required=False, allow_blank=True)
    items = BillItemSerializer(many=True)

    def validate_items(self, v):
        if not v:
            raise serializers.ValidationError('At least one bill item is required')
        return v


class TransactionQuerySerializer(PageQuerySerializer):
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    status = serializers.ChoiceField(choices=[c[0] for c in Payment.STATUS_CHOICES], required=False)
    kind = serializers.ChoiceField(choices=[c[0] for c in Payment.KIND_CHOICES], required=False)

    def validate(self, attrs):
        start, end = attrs.get('start_date'), attrs.get('end_date')
        if start and end and start > end:
            raise serializers.ValidationError('start_date must not be after end_date')
        return attrs


class OutstandingQuerySerializer(PageQuerySerializer):
    search = serializers.CharField(max_length=64, required=False, allow_blank=True)
    filter = serializers.ChoiceField(choices=['all', 'paid', 'pending'], default='all')
