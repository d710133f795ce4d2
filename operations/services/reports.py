import logging

from django.conf import settings
from django.core.files.base import ContentFile
from django.db import transaction
from rest_framework.exceptions import NotFound, PermissionDenied

from operations.models import PrescriptionItem, Report, User
from operations.permissions import ADMIN_ROLES

from .audit import log_action
from .demo import DEMO_REPORTS, find_demo_patient, find_demo_report, is_demo_id, merge_with_demo
from .patients import get_patient
from .pdf import render_report_pdf

logger = logging.getLogger(__name__)


def serialize_report(r: Report) -> dict:
    return {
        'id': r.id,
        'patient': {'id': r.patient_id, 'name': r.patient.name, 'age': r.patient.age, 'gender': r.patient.gender},
        'doctor': {
            'id': r.doctor_id,
            'name': r.doctor.get_full_name() or r.doctor.username,
            'title': r.doctor_title,
            'registration': r.doctor_registration,
        },
        'report_type': r.report_type,
        'title': r.title,
        'chief_complaint': r.chief_complaint,
        'diagnosis': r.diagnosis,
        'findings': r.findings,
        'treatment': r.treatment,
        'advice': r.advice,
        'notes': r.notes,
        'follow_up_date': r.follow_up_date.isoformat() if r.follow_up_date else None,
        'prescription_items': [
            {'name': i.name, 'dosage': i.dosage, 'frequency': i.frequency,
             'duration': i.duration, 'instructions': i.instructions}
            for i in r.prescription_items.all()
        ],
        'has_pdf': bool(r.pdf),
        'created_at': r.created_at.isoformat(),
    }


def create_report(doctor, data: dict) -> dict:
    """Save the report, then render its PDF.

    Rendering happens after the row is committed; a rendering failure is
    reported as ``pdf_error`` without undoing the saved report.
    """
    patient = get_patient(data['patient_id'])
    items = data.get('prescription_items') or []
    fields = {k: v for k, v in data.items() if k not in ('patient_id', 'prescription_items')}
    with transaction.atomic():
        report = Report.objects.create(
            patient=patient,
            doctor=doctor,
            doctor_title=settings.REPORT_DOCTOR_TITLE,
            doctor_registration=settings.REPORT_DOCTOR_REGISTRATION,
            **fields,
        )
        PrescriptionItem.objects.bulk_create([PrescriptionItem(report=report, **item) for item in items])
        log_action(user=doctor, action='report_create', object_type='report', object_id=report.id,
                   detail={'type': report.report_type, 'patient_id': patient.id})

    payload = serialize_report(report)
    try:
        pdf_bytes = render_report_pdf(payload)
        report.pdf.save(f"report-{report.id}.pdf", ContentFile(pdf_bytes), save=True)
        payload['has_pdf'] = True
    except Exception as exc:
        logger.exception("PDF rendering failed for report %s", report.id)
        payload['pdf_error'] = str(exc) or exc.__class__.__name__
    return payload


def _visible_reports(user):
    qs = Report.objects.select_related('patient', 'doctor').prefetch_related('prescription_items')
    role = getattr(user, 'role', '')
    if role in ADMIN_ROLES or role == User.ROLE_NURSE:
        return qs
    if role == User.ROLE_PATIENT:
        return qs.filter(patient__user=user)
    if role == User.ROLE_DOCTOR:
        return qs.filter(doctor=user)
    return qs.none()


def list_reports(user, *, patient_id=None, report_type=None) -> list[dict]:
    if is_demo_id(patient_id):
        demo = [r for r in DEMO_REPORTS.get(patient_id, [])
                if not report_type or r['report_type'] == report_type]
        return merge_with_demo([], demo)
    qs = _visible_reports(user)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if report_type:
        qs = qs.filter(report_type=report_type)
    return [serialize_report(r) for r in qs]


def get_report(user, report_id) -> Report:
    try:
        return _visible_reports(user).get(pk=int(report_id))
    except (Report.DoesNotExist, ValueError, TypeError):
        raise NotFound('Report not found')


def report_pdf(user, report_id) -> tuple[str, bytes]:
    """Return ``(filename, pdf_bytes)``; missing files are rendered on demand."""
    if is_demo_id(report_id):
        demo = find_demo_report(report_id)
        if demo is None:
            raise NotFound('Report not found')
        if getattr(user, 'role', '') == User.ROLE_PATIENT:
            raise PermissionDenied('Demo reports are for staff preview only')
        payload = dict(demo, patient=find_demo_patient(demo['patient_id']),
                       doctor={'name': 'Demo Doctor', 'title': settings.REPORT_DOCTOR_TITLE,
                               'registration': settings.REPORT_DOCTOR_REGISTRATION})
        return f"{report_id}.pdf", render_report_pdf(payload)

    report = get_report(user, report_id)
    if report.pdf:
        with report.pdf.open('rb') as fh:
            data = fh.read()
    else:
        data = render_report_pdf(serialize_report(report))
        report.pdf.save(f"report-{report.id}.pdf", ContentFile(data), save=True)
    log_action(user=user, action='report_download', object_type='report', object_id=report.id)
    return f"report-{report.id}.pdf", data
