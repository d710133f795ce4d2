from decimal import Decimal

import pytest

from operations.models import Bed, Medicine, PatientProfile
from operations.services.activity import recent_activity

pytestmark = pytest.mark.django_db


@pytest.fixture
def busy_day(make_user, client_for):
    doctor = make_user('dr.sharma', 'doctor')
    patient = PatientProfile.objects.create(name='Ravi Kumar', age=45, gender='male', phone='9876500001')
    bed = Bed.objects.create(bed_number='A1', room_number='101', daily_charge=Decimal('1500'))
    medicine = Medicine.objects.create(name='Pan 40', unit_price=Decimal('7.40'))

    client = client_for(doctor)
    client.post('/api/beds/allocate', {'bed_id': str(bed.id), 'patient_id': str(patient.id)}, format='json')
    client.post('/api/medicines/orders', {'medicine_id': medicine.id, 'quantity': 50}, format='json')
    client.post('/api/payments/record', {'kind': 'consultation', 'payer_name': 'Ravi Kumar',
                                         'items': [{'description': 'Consultation Fee', 'amount': '500'}]},
                format='json')
    return doctor


def test_feed_entries_carry_their_kind(busy_day, client_for):
    r = client_for(busy_day).get('/api/activity')
    assert r.status_code == 200
    kinds = {a['kind'] for a in r.data['activities']}
    assert kinds == {'bed_allocation', 'medicine_order', 'payment'}

    order = next(a for a in r.data['activities'] if a['kind'] == 'medicine_order')
    assert order['medicine'] == 'Pan 40'
    assert order['quantity'] == 50
    bed = next(a for a in r.data['activities'] if a['kind'] == 'bed_allocation')
    assert bed['action'] == 'allocated'


def test_feed_is_newest_first_and_filterable(busy_day, client_for):
    client = client_for(busy_day)
    rows = client.get('/api/activity').data['activities']
    stamps = [a['at'] for a in rows]
    assert stamps == sorted(stamps, reverse=True)

    only = client.get('/api/activity', {'kind': ['payment']}).data['activities']
    assert [a['kind'] for a in only] == ['payment']
    assert only[0]['amount'] == '500.00'

    assert client.get('/api/activity', {'kind': 'gossip'}).status_code == 400
    assert len(client.get('/api/activity', {'limit': 1}).data['activities']) == 1


def test_non_admins_only_see_their_own_entries(busy_day, make_user):
    other = make_user('dr.khan', 'doctor')
    assert recent_activity(other) == []
    admin = make_user('admin1', 'admin')
    assert len(recent_activity(admin)) == 3
