from rest_framework import serializers

from operations.models import MedicineOrder

from .common import CleanCharField, PageQuerySerializer


class MedicineListQuerySerializer(PageQuerySerializer):
    search = serializers.CharField(max_length=64, required=False, allow_blank=True)
    category = serializers.CharField(max_length=50, required=False, allow_blank=True)
    low_stock = serializers.BooleanField(required=False, default=False)
    expiring_soon = serializers.BooleanField(required=False, default=False)


class MedicineCreateSerializer(serializers.Serializer):
    name = CleanCharField(max_length=150)
    generic_name = CleanCharField(max_length=150, required=False, allow_blank=True)
    category = CleanCharField(max_length=50, required=False, allow_blank=True)
    manufacturer = CleanCharField(max_length=150, required=False, allow_blank=True)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    stock_quantity = serializers.IntegerField(min_value=0, default=0)
    reorder_level = serializers.IntegerField(min_value=0, default=10)
    expiry_date = serializers.DateField(required=False, allow_null=True)


class OrderCreateSerializer(serializers.Serializer):
    medicine_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)
    priority = serializers.ChoiceField(choices=[c[0] for c in MedicineOrder.PRIORITY_CHOICES], default='normal')
    notes = CleanCharField(required=False, allow_blank=True)


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c[0] for c in MedicineOrder.STATUS_CHOICES])
    notes = CleanCharField(required=False, allow_blank=True)


class OrderListQuerySerializer(PageQuerySerializer):
    status = serializers.ChoiceField(choices=[c[0] for c in MedicineOrder.STATUS_CHOICES], required=False)
    priority = serializers.ChoiceField(choices=[c[0] for c in MedicineOrder.PRIORITY_CHOICES], required=False)
