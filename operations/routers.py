"""
URL mappings for the dashboard API.

Paths are those the console calls (``/api/...``, no trailing slashes),
plus the Prometheus ``metrics`` endpoint and the ``healthz`` check.
"""
from django.urls import include, path

from .auth_views import login_view, logout_view, me_view, refresh_token_view
from .views import activity, ai, appointments, beds, health, medicines, patients, payments, reports

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Authentication
    path('api/auth/login', login_view),
    path('api/auth/refresh-token', refresh_token_view),
    path('api/auth/logout', logout_view),
    path('api/auth/me', me_view),
    # Patients
    path('api/patients', patients.patients),
    path('api/patients/<str:patient_id>', patients.patient_detail),
    # Beds
    path('api/beds', beds.list_beds),
    path('api/beds/availability', beds.bed_availability),
    path('api/beds/allocate', beds.allocate_bed),
    path('api/beds/create', beds.create_bed),
    path('api/beds/<str:bed_id>/discharge', beds.discharge_bed),
    path('api/beds/<str:bed_id>/status', beds.bed_status),
    # Medicines and reorder requests
    path('api/medicines', medicines.list_medicines),
    path('api/medicines/create', medicines.create_medicine),
    path('api/medicines/orders', medicines.orders),
    path('api/medicines/orders/stats', medicines.order_stats),
    path('api/medicines/orders/<int:order_id>', medicines.order_detail),
    path('api/medicines/orders/<int:order_id>/status', medicines.order_status),
    path('api/medicines/orders/<int:order_id>/cancel', medicines.cancel_order),
    # Appointments and video rooms
    path('api/appointments', appointments.list_appointments),
    path('api/appointments/doctor-book', appointments.doctor_book),
    path('api/appointments/doctors', appointments.list_doctors),
    path('api/appointments/<int:appointment_id>', appointments.appointment_detail),
    path('api/appointments/<int:appointment_id>/cancel', appointments.cancel_appointment),
    path('api/appointments/<int:appointment_id>/status', appointments.appointment_status),
    path('api/video/<int:appointment_id>/create-room', appointments.create_video_room),
    path('api/video/<int:appointment_id>/token', appointments.video_token),
    path('api/video/<int:appointment_id>/end-call', appointments.end_video_call),
    # Payments
    path('api/payments/create-order', payments.create_order),
    path('api/payments/verify', payments.verify_payment),
    path('api/payments/record', payments.record_payment),
    path('api/payments/history', payments.payment_history),
    path('api/payments/outstanding', payments.outstanding),
    path('api/payments/transactions', payments.transactions),
    path('api/payments/stats', payments.payment_stats),
    path('api/payments/hospital-fee-options', payments.hospital_fee_options),
    path('api/payments/<int:payment_id>', payments.payment_detail),
    # Reports
    path('api/reports', reports.reports),
    path('api/reports/<str:report_id>', reports.report_detail),
    path('api/reports/<str:report_id>/download', reports.download_report),
    # AI symptom checker
    path('api/ai/diagnose', ai.diagnose),
    path('api/ai/history/<str:patient_id>', ai.patient_history),
    path('api/ai/all-diagnoses', ai.all_diagnoses),
    # Recent activity
    path('api/activity', activity.activity),
]
