"""
Django admin registrations for the operations models.

Inlines show bill items under their payment and prescription lines under
their report. Audit events are read-only.
"""

from django.contrib import admin

from .models import (
    AIDiagnosis,
    Appointment,
    AuditEvent,
    Bed,
    BillItem,
    Medicine,
    MedicineOrder,
    PatientProfile,
    Payment,
    PrescriptionItem,
    Report,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'specialization', 'consultation_fee', 'is_staff', 'is_superuser')
    list_filter = ('role',)
    search_fields = ('username', 'first_name', 'last_name', 'email')


@admin.register(PatientProfile)
class PatientProfileAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'age', 'gender', 'phone', 'blood_group', 'status', 'created_at')
    list_filter = ('status', 'gender', 'blood_group')
    search_fields = ('name', 'phone', 'disease')


@admin.register(Bed)
class BedAdmin(admin.ModelAdmin):
    list_display = ('floor_number', 'room_number', 'bed_number', 'ward_type', 'status', 'patient', 'daily_charge')
    list_filter = ('ward_type', 'status', 'floor_number')
    search_fields = ('room_number', 'bed_number', 'patient__name')


@admin.register(Medicine)
class MedicineAdmin(admin.ModelAdmin):
    list_display = ('name', 'generic_name', 'category', 'stock_quantity', 'reorder_level', 'expiry_date')
    list_filter = ('category',)
    search_fields = ('name', 'generic_name', 'manufacturer')


@admin.register(MedicineOrder)
class MedicineOrderAdmin(admin.ModelAdmin):
    list_display = ('id', 'medicine', 'doctor', 'quantity', 'priority', 'status', 'created_at')
    list_filter = ('status', 'priority')
    search_fields = ('medicine__name', 'doctor__username')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'appointment_type', 'doctor', 'appointment_date', 'start_time', 'status',
                    'payment_status', 'queue_number')
    list_filter = ('appointment_type', 'status', 'payment_status', 'consultation_mode')
    search_fields = ('doctor__username', 'peer_doctor__username', 'patient__name', 'reason')
    date_hierarchy = 'appointment_date'


class BillItemInline(admin.TabularInline):
    model = BillItem
    extra = 0


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('receipt_number', 'kind', 'payer_name', 'total_amount', 'status', 'method', 'created_at')
    list_filter = ('kind', 'status', 'method')
    search_fields = ('receipt_number', 'payer_name', 'checkout_order_id')
    inlines = [BillItemInline]


class PrescriptionItemInline(admin.TabularInline):
    model = PrescriptionItem
    extra = 0


@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    list_display = ('id', 'report_type', 'title', 'patient', 'doctor', 'created_at')
    list_filter = ('report_type',)
    search_fields = ('title', 'diagnosis', 'patient__name')
    inlines = [PrescriptionItemInline]


@admin.register(AIDiagnosis)
class AIDiagnosisAdmin(admin.ModelAdmin):
    list_display = ('id', 'doctor', 'patient', 'demo_mode', 'created_at')
    list_filter = ('demo_mode',)
    search_fields = ('symptoms',)


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'user', 'action', 'object_type', 'object_id')
    list_filter = ('action', 'object_type')
    search_fields = ('user__username', 'object_id')
    readonly_fields = ('user', 'action', 'object_type', 'object_id', 'detail', 'created_at')
