import pytest

from operations.models import PatientProfile, Report
from operations.services import reports as report_service

pytestmark = pytest.mark.django_db


@pytest.fixture
def clinic(make_user):
    doctor = make_user('dr.sharma', 'doctor', first_name='Rohan', last_name='Sharma')
    patient = PatientProfile.objects.create(name='Lakshmi Nair', age=61, gender='female', phone='9876500004')
    return doctor, patient


def prescription(patient, **overrides):
    payload = {
        'patient_id': patient.id,
        'report_type': 'prescription',
        'title': 'Knee pain',
        'diagnosis': 'Osteoarthritis of the right knee',
        'prescription_items': [
            {'name': 'Paracetamol', 'dosage': '500 mg', 'frequency': 'Twice daily', 'duration': '5 days'},
            {'name': '', 'dosage': ''},
        ],
    }
    payload.update(overrides)
    return payload


def test_doctor_writes_report_and_pdf_is_rendered(clinic, client_for):
    doctor, patient = clinic
    r = client_for(doctor).post('/api/reports', prescription(patient), format='json')
    assert r.status_code == 201
    report = r.data['report']
    assert report['has_pdf'] is True
    assert 'pdf_error' not in report
    assert [i['name'] for i in report['prescription_items']] == ['Paracetamol']
    assert report['doctor']['registration']
    stored = Report.objects.get()
    with stored.pdf.open('rb') as fh:
        assert fh.read(4) == b'%PDF'


def test_prescription_needs_a_named_dosed_item(clinic, client_for):
    doctor, patient = clinic
    client = client_for(doctor)
    r = client.post('/api/reports', prescription(patient, prescription_items=[]), format='json')
    assert r.status_code == 400
    r = client.post('/api/reports', prescription(patient, prescription_items=[{'name': 'Ibuprofen', 'dosage': ''}]),
                    format='json')
    assert r.status_code == 400
    assert Report.objects.count() == 0


def test_diagnosis_is_required(clinic, client_for):
    doctor, patient = clinic
    r = client_for(doctor).post('/api/reports', prescription(patient, report_type='medical', diagnosis=''),
                                format='json')
    assert r.status_code == 400
    assert r.data['error']['message'] == 'diagnosis: Diagnosis is required'


def test_only_doctors_write_reports(clinic, client_for, make_user):
    _, patient = clinic
    nurse = make_user('nurse1', 'nurse')
    r = client_for(nurse).post('/api/reports', prescription(patient), format='json')
    assert r.status_code == 403


def test_pdf_failure_still_saves_the_report(clinic, client_for, monkeypatch):
    doctor, patient = clinic

    def broken(_report):
        raise RuntimeError('font missing')

    monkeypatch.setattr(report_service, 'render_report_pdf', broken)
    r = client_for(doctor).post('/api/reports', prescription(patient), format='json')
    assert r.status_code == 201
    assert r.data['report']['pdf_error'] == 'font missing'
    assert r.data['report']['has_pdf'] is False
    assert Report.objects.count() == 1


def test_download_streams_pdf_attachment(clinic, client_for):
    doctor, patient = clinic
    client = client_for(doctor)
    report_id = client.post('/api/reports', prescription(patient), format='json').data['report']['id']

    r = client.get(f'/api/reports/{report_id}/download')
    assert r.status_code == 200
    assert r['Content-Type'] == 'application/pdf'
    assert r['Content-Disposition'] == f'attachment; filename="report-{report_id}.pdf"'
    assert r.content.startswith(b'%PDF')


def test_patient_downloads_own_report_but_not_demo_reports(clinic, client_for, make_user):
    doctor, patient = clinic
    patient_user = make_user('lakshmi', 'patient')
    patient.user = patient_user
    patient.save()
    report_id = client_for(doctor).post('/api/reports', prescription(patient), format='json').data['report']['id']

    client = client_for(patient_user)
    assert client.get(f'/api/reports/{report_id}/download').status_code == 200
    assert client.get('/api/reports/demo-report-1/download').status_code == 403


def test_staff_can_preview_demo_report(clinic, client_for):
    doctor, _ = clinic
    r = client_for(doctor).get('/api/reports/demo-report-2/download')
    assert r.status_code == 200
    assert r.content.startswith(b'%PDF')
    assert Report.objects.count() == 0


def test_doctors_only_see_their_own_reports(clinic, client_for, make_user):
    doctor, patient = clinic
    report_id = client_for(doctor).post('/api/reports', prescription(patient), format='json').data['report']['id']
    other = make_user('dr.khan', 'doctor')
    assert client_for(other).get(f'/api/reports/{report_id}').status_code == 404
    assert client_for(other).get('/api/reports').data['reports'] == []


def test_demo_patient_reports_are_listed(clinic, client_for, settings):
    settings.DEMO_RECORDS_ENABLED = True
    doctor, _ = clinic
    rows = client_for(doctor).get('/api/reports', {'patient_id': 'demo-patient-1'}).data['reports']
    assert [r['id'] for r in rows] == ['demo-report-1', 'demo-report-2']
