from rest_framework import serializers

from operations.models import Bed

from .common import CleanCharField

WARD_TYPES = [c[0] for c in Bed.WARD_CHOICES]
BED_STATUSES = [c[0] for c in Bed.STATUS_CHOICES]


class BedListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=BED_STATUSES, required=False)
    ward_type = serializers.ChoiceField(choices=WARD_TYPES, required=False)
    floor_number = serializers.IntegerField(min_value=0, required=False)


class BedAllocateSerializer(serializers.Serializer):
    bed_id = serializers.CharField()
    patient_id = serializers.CharField()
    notes = CleanCharField(required=False, allow_blank=True)


class BedStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=['available', 'maintenance', 'cleaning', 'reserved'])
    notes = CleanCharField(required=False, allow_blank=True)


class BedCreateSerializer(serializers.Serializer):
    bed_number = CleanCharField(max_length=20)
    room_number = CleanCharField(max_length=20)
    floor_number = serializers.IntegerField(min_value=0)
    ward_type = serializers.ChoiceField(choices=WARD_TYPES)
    daily_charge = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    notes = CleanCharField(required=False, allow_blank=True)
