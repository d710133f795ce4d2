"""
Management command to seed a development database.

Creates staff per role, sample patients, beds across every ward type and
a small medicine catalogue. Every row is looked up before it is created,
so running the command twice leaves the same data.
"""
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.utils import timezone

from operations.models import Bed, Medicine, PatientProfile, User

STAFF = [
    # username, role, first, last, specialization, fee
    ('admin', User.ROLE_ADMIN, 'Asha', 'Rao', '', '0'),
    ('dr.sharma', User.ROLE_DOCTOR, 'Rohan', 'Sharma', 'Cardiology', '1000'),
    ('dr.iyer', User.ROLE_DOCTOR, 'Meera', 'Iyer', 'Neurology', '1500'),
    ('dr.khan', User.ROLE_DOCTOR, 'Imran', 'Khan', 'General Medicine', '0'),
    ('nurse.das', User.ROLE_NURSE, 'Priya', 'Das', '', '0'),
    ('front.desk', User.ROLE_RECEPTIONIST, 'Kiran', 'Mehta', '', '0'),
    ('pharma.roy', User.ROLE_PHARMACIST, 'Arjun', 'Roy', '', '0'),
]

PATIENTS = [
    ('Ravi Kumar', 45, 'male', '9876500001', 'O+', 'Hypertension'),
    ('Sunita Devi', 38, 'female', '9876500002', 'A+', 'Type 2 Diabetes'),
    ('Amit Verma', 29, 'male', '9876500003', 'B+', 'Asthma'),
    ('Lakshmi Nair', 61, 'female', '9876500004', 'AB+', 'Osteoarthritis'),
    ('Farhan Ali', 52, 'male', '9876500005', 'O-', 'Coronary artery disease'),
]

# ward type, floor, room, beds, daily charge
WARDS = [
    (Bed.WARD_GENERAL, 1, '101', ['A1', 'A2', 'A3', 'A4'], '1500'),
    (Bed.WARD_SEMI_PRIVATE, 1, '110', ['B1', 'B2'], '2500'),
    (Bed.WARD_PRIVATE, 2, '201', ['P1'], '4000'),
    (Bed.WARD_PRIVATE, 2, '202', ['P1'], '4000'),
    (Bed.WARD_ICU, 0, 'ICU-01', ['ICU-1', 'ICU-2', 'ICU-3'], '8000'),
    (Bed.WARD_CCU, 0, 'CCU-01', ['CCU-1'], '9000'),
    (Bed.WARD_EMERGENCY, 0, 'ER-01', ['ER-1', 'ER-2'], '3000'),
]

MEDICINES = [
    # name, generic, category, manufacturer, price, stock, expiry in days
    ('Crocin 500', 'Paracetamol', 'Analgesic', 'GSK', '2.50', 400, 540),
    ('Amlokind 5', 'Amlodipine', 'Antihypertensive', 'Mankind', '3.10', 8, 300),
    ('Glycomet 500', 'Metformin', 'Antidiabetic', 'USV', '1.80', 250, 20),
    ('Azithral 500', 'Azithromycin', 'Antibiotic', 'Alembic', '21.00', 5, 400),
    ('Asthalin', 'Salbutamol', 'Bronchodilator', 'Cipla', '140.00', 30, 25),
    ('Pan 40', 'Pantoprazole', 'Antacid', 'Alkem', '7.40', 600, 720),
]


class Command(BaseCommand):
    help = 'Seed staff, patients, beds and medicines for local development'

    def add_arguments(self, parser):
        parser.add_argument('--password', default='123456', help='password for the seeded staff logins')

    def handle(self, *args, **options):
        self.stdout.write('Seeding demo data...')
        staff = self.create_staff(options['password'])
        patients = self.create_patients()
        beds = self.create_beds()
        medicines = self.create_medicines()
        self.stdout.write(self.style.SUCCESS(
            f'Seed complete: {staff} staff, {patients} patients, {beds} beds, {medicines} medicines.'
        ))

    def create_staff(self, password):
        hashed = make_password(password)
        for username, role, first, last, specialization, fee in STAFF:
            User.objects.get_or_create(
                username=username,
                defaults={
                    'role': role,
                    'first_name': first,
                    'last_name': last,
                    'email': f'{username}@hospital.local',
                    'specialization': specialization,
                    'consultation_fee': Decimal(fee),
                    'password': hashed,
                    'is_staff': role == User.ROLE_ADMIN,
                },
            )
        return len(STAFF)

    def create_patients(self):
        for name, age, gender, phone, blood_group, disease in PATIENTS:
            PatientProfile.objects.get_or_create(
                name=name, phone=phone,
                defaults={'age': age, 'gender': gender, 'blood_group': blood_group, 'disease': disease},
            )
        return len(PATIENTS)

    def create_beds(self):
        count = 0
        for ward_type, floor, room, bed_numbers, charge in WARDS:
            for bed_number in bed_numbers:
                Bed.objects.get_or_create(
                    floor_number=floor, room_number=room, bed_number=bed_number,
                    defaults={'ward_type': ward_type, 'daily_charge': Decimal(charge)},
                )
                count += 1
        return count

    def create_medicines(self):
        today = timezone.localdate()
        for name, generic, category, maker, price, stock, days in MEDICINES:
            Medicine.objects.get_or_create(
                name=name,
                defaults={
                    'generic_name': generic,
                    'category': category,
                    'manufacturer': maker,
                    'unit_price': Decimal(price),
                    'stock_quantity': stock,
                    'expiry_date': today + timedelta(days=days),
                },
            )
        return len(MEDICINES)
