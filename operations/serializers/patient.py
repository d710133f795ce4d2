from rest_framework import serializers

from .common import CleanCharField, PageQuerySerializer

BLOOD_GROUPS = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-']


class PatientCreateSerializer(serializers.Serializer):
    name = CleanCharField(max_length=150)
    age = serializers.IntegerField(min_value=0, max_value=150)
    gender = serializers.ChoiceField(choices=['male', 'female', 'other'])
    phone = CleanCharField(max_length=20)
    email = serializers.EmailField(required=False, allow_blank=True)
    blood_group = serializers.ChoiceField(choices=BLOOD_GROUPS, required=False, allow_blank=True)
    disease = CleanCharField(max_length=255, required=False, allow_blank=True)
    address = CleanCharField(required=False, allow_blank=True)
    emergency_contact = CleanCharField(max_length=100, required=False, allow_blank=True)
    emergency_phone = CleanCharField(max_length=20, required=False, allow_blank=True)
    allergies = CleanCharField(required=False, allow_blank=True)

    def validate_name(self, v):
        if len(v) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters')
        return v

    def validate_phone(self, v):
        if not v:
            raise serializers.ValidationError('Phone is required')
        return v


class PatientUpdateSerializer(PatientCreateSerializer):
    status = serializers.ChoiceField(choices=['outpatient', 'admitted', 'discharged'], required=False)

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('partial', True)
        super().__init__(*args, **kwargs)


class PatientListQuerySerializer(PageQuerySerializer):
    search = serializers.CharField(max_length=64, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=['outpatient', 'admitted', 'discharged'], required=False)
