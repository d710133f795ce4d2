"""
Database models for the hospital operations dashboard.

The tables back the dashboard screens: staff users and patients, ward beds,
the pharmacy catalogue and medicine reorders, appointments with their video
rooms, payments with bill items, clinical reports with prescription lines
and the AI diagnosis history. Demo placeholder rows are never stored here;
they are generated in memory by :mod:`operations.services.demo`.
"""
from __future__ import annotations

import uuid
from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Dashboard user with a hospital role.

    Doctors carry a specialization and the consultation fee charged for
    doctor-to-doctor consultations (zero means free).
    """
    ROLE_ADMIN = 'admin'
    ROLE_DOCTOR = 'doctor'
    ROLE_NURSE = 'nurse'
    ROLE_RECEPTIONIST = 'receptionist'
    ROLE_PHARMACIST = 'pharmacist'
    ROLE_PATIENT = 'patient'
    ROLE_CHOICES = (
        (ROLE_ADMIN, 'Administrator'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_NURSE, 'Nurse'),
        (ROLE_RECEPTIONIST, 'Receptionist'),
        (ROLE_PHARMACIST, 'Pharmacist'),
        (ROLE_PATIENT, 'Patient'),
    )
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)
    phone = models.CharField(max_length=20, blank=True)
    specialization = models.CharField(max_length=100, blank=True)
    consultation_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class PatientProfile(models.Model):
    """A registered patient.

    Intake requires name, age, gender and phone; the remaining fields are
    optional clinical context. A patient may also have a login (``user``).
    """
    GENDER_CHOICES = (('male', 'Male'), ('female', 'Female'), ('other', 'Other'))
    STATUS_CHOICES = (
        ('outpatient', 'Outpatient'),
        ('admitted', 'Admitted'),
        ('discharged', 'Discharged'),
    )

    user = models.OneToOneField(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='patient_profile'
    )
    name = models.CharField(max_length=150)
    age = models.PositiveIntegerField()
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES)
    phone = models.CharField(max_length=20)
    email = models.EmailField(blank=True)
    blood_group = models.CharField(max_length=5, blank=True)
    disease = models.CharField(max_length=255, blank=True)
    address = models.TextField(blank=True)
    emergency_contact = models.CharField(max_length=100, blank=True)
    emergency_phone = models.CharField(max_length=20, blank=True)
    allergies = models.TextField(blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='outpatient', db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.name} ({self.disease or 'n/a'})"


class Bed(models.Model):
    WARD_GENERAL = 'general'
    WARD_SEMI_PRIVATE = 'semi_private'
    WARD_PRIVATE = 'private'
    WARD_ICU = 'icu'
    WARD_CCU = 'ccu'
    WARD_EMERGENCY = 'emergency'
    WARD_CHOICES = (
        (WARD_GENERAL, 'General'),
        (WARD_SEMI_PRIVATE, 'Semi-private'),
        (WARD_PRIVATE, 'Private'),
        (WARD_ICU, 'ICU'),
        (WARD_CCU, 'CCU'),
        (WARD_EMERGENCY, 'Emergency'),
    )

    STATUS_AVAILABLE = 'available'
    STATUS_OCCUPIED = 'occupied'
    STATUS_MAINTENANCE = 'maintenance'
    STATUS_CLEANING = 'cleaning'
    STATUS_RESERVED = 'reserved'
    STATUS_CHOICES = (
        (STATUS_AVAILABLE, 'Available'),
        (STATUS_OCCUPIED, 'Occupied'),
        (STATUS_MAINTENANCE, 'Maintenance'),
        (STATUS_CLEANING, 'Cleaning'),
        (STATUS_RESERVED, 'Reserved'),
    )

    bed_number = models.CharField(max_length=20)
    room_number = models.CharField(max_length=20)
    floor_number = models.PositiveIntegerField(default=1)
    ward_type = models.CharField(max_length=16, choices=WARD_CHOICES, default=WARD_GENERAL, db_index=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_AVAILABLE, db_index=True)
    daily_charge = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    patient = models.ForeignKey(
        PatientProfile, null=True, blank=True, on_delete=models.SET_NULL, related_name='beds'
    )
    assigned_date = models.DateTimeField(null=True, blank=True)
    discharge_date = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['floor_number', 'room_number', 'bed_number']
        constraints = [
            models.UniqueConstraint(
                fields=['floor_number', 'room_number', 'bed_number'], name='unique_bed_location'
            ),
        ]

    def __str__(self) -> str:
        return f"Bed {self.bed_number} / room {self.room_number} ({self.status})"


class Medicine(models.Model):
    name = models.CharField(max_length=150)
    generic_name = models.CharField(max_length=150, blank=True)
    category = models.CharField(max_length=50, blank=True, db_index=True)
    manufacturer = models.CharField(max_length=150, blank=True)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    stock_quantity = models.PositiveIntegerField(default=0)
    reorder_level = models.PositiveIntegerField(default=10)
    expiry_date = models.DateField(null=True, blank=True)

    class Meta:
        ordering = ['name']

    def __str__(self) -> str:
        return self.name


class MedicineOrder(models.Model):
    """A doctor's reorder request for a medicine; status is owned by pharmacy."""
    PRIORITY_CHOICES = (
        ('low', 'Low'),
        ('normal', 'Normal'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    )

    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_COMPLETED = 'completed'
    STATUS_REJECTED = 'rejected'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_CANCELLED, 'Cancelled'),
    )

    medicine = models.ForeignKey(Medicine, on_delete=models.PROTECT, related_name='orders')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='medicine_orders')
    quantity = models.PositiveIntegerField()
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='normal')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [models.Index(fields=['doctor', 'status'])]

    def __str__(self) -> str:
        return f"Order #{self.pk} {self.medicine_id} x{self.quantity} ({self.status})"


class Appointment(models.Model):
    TYPE_DOCTOR_TO_DOCTOR = 'doctor_to_doctor'
    TYPE_DOCTOR_TO_PATIENT = 'doctor_to_patient'
    TYPE_CHOICES = (
        (TYPE_DOCTOR_TO_DOCTOR, 'Doctor to doctor'),
        (TYPE_DOCTOR_TO_PATIENT, 'Doctor to patient'),
    )

    MODE_VIDEO = 'video'
    MODE_IN_PERSON = 'in_person'
    MODE_CHOICES = ((MODE_VIDEO, 'Video'), (MODE_IN_PERSON, 'In person'))

    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_NO_SHOW = 'no_show'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_NO_SHOW, 'No show'),
    )

    PAYMENT_PENDING = 'pending'
    PAYMENT_PAID = 'paid'
    PAYMENT_WAIVED = 'waived'
    PAYMENT_STATUS_CHOICES = (
        (PAYMENT_PENDING, 'Pending'),
        (PAYMENT_PAID, 'Paid'),
        (PAYMENT_WAIVED, 'Waived'),
    )

    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='appointments')
    patient = models.ForeignKey(
        PatientProfile, null=True, blank=True, on_delete=models.CASCADE, related_name='appointments'
    )
    peer_doctor = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.CASCADE, related_name='peer_appointments'
    )
    appointment_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    consultation_mode = models.CharField(max_length=10, choices=MODE_CHOICES, default=MODE_VIDEO)
    appointment_date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    reason = models.TextField(blank=True)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_CONFIRMED, db_index=True)
    queue_number = models.PositiveIntegerField(default=1)
    payment_status = models.CharField(max_length=8, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_PENDING)
    payment_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    video_room_url = models.CharField(max_length=255, blank=True)
    video_room_id = models.CharField(max_length=64, blank=True)
    video_call_started_at = models.DateTimeField(null=True, blank=True)
    video_call_ended_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-appointment_date', '-start_time']
        indexes = [models.Index(fields=['doctor', 'appointment_date', 'start_time'])]

    def __str__(self) -> str:
        return f"Appointment #{self.pk} {self.appointment_type} {self.appointment_date} {self.start_time}"


class Payment(models.Model):
    KIND_PEER_CONSULTATION = 'peer_consultation'
    KIND_PATIENT_CONSULTATION = 'patient_consultation'
    KIND_HOSPITAL_FEE = 'hospital_fee'
    KIND_CHOICES = (
        (KIND_PEER_CONSULTATION, 'Peer consultation'),
        (KIND_PATIENT_CONSULTATION, 'Patient consultation'),
        ('consultation', 'Consultation'),
        ('bed', 'Bed'),
        ('medicine', 'Medicine'),
        ('lab_test', 'Lab test'),
        ('registration', 'Registration'),
        (KIND_HOSPITAL_FEE, 'Hospital fee'),
    )
    # Types a checkout order may be opened for
    CHECKOUT_KINDS = ('consultation', 'bed', 'medicine', 'lab_test', 'registration')

    STATUS_CREATED = 'created'
    STATUS_PENDING = 'pending'
    STATUS_COMPLETED = 'completed'
    STATUS_FAILED = 'failed'
    STATUS_REFUNDED = 'refunded'
    STATUS_OVERDUE = 'overdue'
    STATUS_CHOICES = (
        (STATUS_CREATED, 'Created'),
        (STATUS_PENDING, 'Pending'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_FAILED, 'Failed'),
        (STATUS_REFUNDED, 'Refunded'),
        (STATUS_OVERDUE, 'Overdue'),
    )

    METHOD_CHOICES = (
        ('checkout', 'Checkout'),
        ('upi', 'UPI'),
        ('cash', 'Cash'),
        ('card', 'Card'),
    )

    receipt_number = models.CharField(max_length=40, unique=True)
    kind = models.CharField(max_length=24, choices=KIND_CHOICES, db_index=True)
    payer_name = models.CharField(max_length=150, blank=True)
    user = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='payments')
    patient = models.ForeignKey(
        PatientProfile, null=True, blank=True, on_delete=models.SET_NULL, related_name='payments'
    )
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='payments'
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default='INR')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    method = models.CharField(max_length=10, choices=METHOD_CHOICES, default='checkout')
    checkout_order_id = models.CharField(max_length=64, blank=True, db_index=True)
    checkout_payment_id = models.CharField(max_length=64, blank=True)
    description = models.CharField(max_length=255, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.receipt_number} {self.total_amount} {self.currency} ({self.status})"


class BillItem(models.Model):
    payment = models.ForeignKey(Payment, on_delete=models.CASCADE, related_name='items')
    description = models.CharField(max_length=150)
    amount = models.DecimalField(max_digits=12, decimal_places=2)

    def __str__(self) -> str:
        return f"{self.description}: {self.amount}"


def _report_upload(instance, filename: str) -> str:
    return f"reports/{instance.report_type}/{uuid.uuid4().hex}.pdf"


class Report(models.Model):
    TYPE_MEDICAL = 'medical'
    TYPE_PRESCRIPTION = 'prescription'
    TYPE_DISCHARGE = 'discharge'
    TYPE_LAB = 'lab'
    TYPE_CHOICES = (
        (TYPE_MEDICAL, 'Medical report'),
        (TYPE_PRESCRIPTION, 'Prescription'),
        (TYPE_DISCHARGE, 'Discharge summary'),
        (TYPE_LAB, 'Lab report'),
    )

    patient = models.ForeignKey(PatientProfile, on_delete=models.CASCADE, related_name='reports')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='reports')
    report_type = models.CharField(max_length=16, choices=TYPE_CHOICES, db_index=True)
    title = models.CharField(max_length=255)
    chief_complaint = models.TextField(blank=True)
    diagnosis = models.TextField()
    findings = models.TextField(blank=True)
    treatment = models.TextField(blank=True)
    advice = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    follow_up_date = models.DateField(null=True, blank=True)
    doctor_title = models.CharField(max_length=100, blank=True)
    doctor_registration = models.CharField(max_length=50, blank=True)
    pdf = models.FileField(upload_to=_report_upload, max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.get_report_type_display()}: {self.title}"


class PrescriptionItem(models.Model):
    report = models.ForeignKey(Report, on_delete=models.CASCADE, related_name='prescription_items')
    name = models.CharField(max_length=150)
    dosage = models.CharField(max_length=100)
    frequency = models.CharField(max_length=100, blank=True)
    duration = models.CharField(max_length=100, blank=True)
    instructions = models.CharField(max_length=255, blank=True)

    def __str__(self) -> str:
        return f"{self.name} {self.dosage}"


class AIDiagnosis(models.Model):
    """A symptom-checker request and the text returned by the inference endpoint."""
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='ai_diagnoses')
    patient = models.ForeignKey(
        PatientProfile, null=True, blank=True, on_delete=models.SET_NULL, related_name='ai_diagnoses'
    )
    symptoms = models.TextField()
    ai_response = models.TextField()
    attachments = models.JSONField(default=list, blank=True)
    demo_mode = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name_plural = 'AI diagnoses'

    def __str__(self) -> str:
        return f"AI diagnosis #{self.pk} by {self.doctor_id}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at']),
            models.Index(fields=['object_type', 'object_id', 'created_at']),
        ]

    def __str__(self) -> str:
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
