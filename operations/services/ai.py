"""
AI symptom checker proxy.

Doctors submit symptom text (plus optional attachments) and receive the
free text produced by an OpenAI-compatible chat completions endpoint.
Without an API key the service answers with a fixed demo template so the
screen stays usable in development.
"""
import logging
import os
from dataclasses import dataclass

import requests
from django.conf import settings
from rest_framework.exceptions import NotFound, ValidationError

from operations.exceptions import ServiceUnavailable, UpstreamError
from operations.models import AIDiagnosis, PatientProfile

from .audit import log_action
from .demo import is_demo_id

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an AI medical assistant helping doctors analyze symptoms and suggest possible diagnoses.
Provide your response in this exact format:

POSSIBLE CONDITIONS:
1. [Condition Name] - [Brief reason why]
2. [Condition Name] - [Brief reason why]
3. [Condition Name] - [Brief reason why]

SUGGESTED MEDICINES (Generic names only):
- [Medicine 1] - [Dosage]
- [Medicine 2] - [Dosage]

RECOMMENDED TESTS:
- [Test 1]
- [Test 2]

RED FLAGS (Immediate specialist referral needed if):
- [Red flag 1]
- [Red flag 2]

NOTES:
[Any additional notes]

DISCLAIMER: This is AI-generated assistance. Final diagnosis by a qualified doctor is required."""

DEMO_RESPONSE = """POSSIBLE CONDITIONS:
1. Viral Fever - Patient presents with fever, which commonly indicates viral infection
2. Seasonal Flu - Symptoms match influenza pattern
3. Common Cold - Mild fever with respiratory symptoms

SUGGESTED MEDICINES (Generic names only):
- Paracetamol 500mg - 3 times daily after food for fever
- Vitamin C 500mg - Once daily for immunity
- ORS solution - For hydration

RECOMMENDED TESTS:
- Complete Blood Count (CBC)
- Rapid Fever Panel

RED FLAGS (Immediate specialist referral needed if):
- Fever persists > 5 days
- Patient becomes unconscious
- Severe dehydration occurs

NOTES:
Monitor temperature every 6 hours. Maintain hydration. Light diet recommended.

DISCLAIMER: This is AI-generated assistance. Final diagnosis by a qualified doctor is required."""

UNAVAILABLE_MESSAGE = 'AI service unavailable, please proceed manually'


@dataclass
class UploadLimits:
    max_files: int
    max_bytes: int
    extensions: tuple

    @classmethod
    def from_settings(cls) -> 'UploadLimits':
        return cls(
            max_files=settings.AI_UPLOAD_MAX_FILES,
            max_bytes=settings.AI_UPLOAD_MAX_MB * 1024 * 1024,
            extensions=tuple(e.lower() for e in settings.AI_UPLOAD_EXTENSIONS),
        )


def validate_attachments(files, limits: UploadLimits | None = None) -> list[str]:
    """Check count, size and extension of uploaded files; return their names."""
    limits = limits or UploadLimits.from_settings()
    files = list(files or [])
    if len(files) > limits.max_files:
        raise ValidationError({'files': f'At most {limits.max_files} files can be attached'})
    names = []
    for f in files:
        name = getattr(f, 'name', '') or ''
        if os.path.splitext(name)[1].lower() not in limits.extensions:
            raise ValidationError({'files': f'{name}: only PDF, JPG, PNG and DOC files are allowed'})
        if (getattr(f, 'size', 0) or 0) > limits.max_bytes:
            raise ValidationError({'files': f'{name}: files must be {limits.max_bytes // (1024 * 1024)} MB or smaller'})
        names.append(name)
    return names


def patient_context(patient: PatientProfile | None) -> str:
    """Clinical context sent upstream; the patient's name is never included."""
    if patient is None:
        return ''
    parts = [f"Patient Age: {patient.age} years", f"Gender: {patient.gender}"]
    if patient.blood_group:
        parts.append(f"Blood Group: {patient.blood_group}")
    if patient.disease:
        parts.append(f"Known condition: {patient.disease}")
    if patient.allergies:
        parts.append(f"Allergies: {patient.allergies}")
    return ', '.join(parts)


def build_messages(symptoms: str, context: str, attachment_count: int) -> list[dict]:
    user_content = "Doctor needs help diagnosing a patient.\n\n"
    if context:
        user_content += f"{context}\n\n"
    user_content += f"SYMPTOMS: {symptoms}\n"
    if attachment_count:
        user_content += f"\nAttached Files: {attachment_count} file(s) uploaded for analysis.\n"
    user_content += "\nPlease analyze and provide suggestions."
    return [
        {'role': 'system', 'content': SYSTEM_PROMPT},
        {'role': 'user', 'content': user_content},
    ]


def call_inference(messages: list[dict]) -> str:
    """POST to the chat completions endpoint and return the first choice's text.

    Upstream failures map onto API errors: timeout and unknown failures to
    503, upstream 401 and 429 pass through with their status.
    """
    try:
        r = requests.post(
            settings.AI_API_URL,
            headers={'Authorization': f"Bearer {settings.AI_API_KEY}"},
            json={
                'model': settings.AI_MODEL,
                'messages': messages,
                'temperature': settings.AI_TEMPERATURE,
                'max_tokens': settings.AI_MAX_TOKENS,
            },
            timeout=settings.AI_TIMEOUT,
        )
    except requests.Timeout:
        logger.warning("AI inference timed out after %ss", settings.AI_TIMEOUT)
        raise ServiceUnavailable('AI request timed out, please try again or proceed manually')
    except requests.RequestException as exc:
        logger.warning("AI inference request failed: %s", exc)
        raise ServiceUnavailable(UNAVAILABLE_MESSAGE)

    if r.status_code == 401:
        raise UpstreamError('AI service authentication failed', status_code=401, code='ai_auth_failed')
    if r.status_code == 429:
        raise UpstreamError('AI service rate limit reached, try again shortly', status_code=429,
                            code='ai_rate_limited')
    if not r.ok:
        logger.warning("AI inference returned %s: %s", r.status_code, r.text[:200])
        raise ServiceUnavailable(UNAVAILABLE_MESSAGE)
    try:
        return r.json()['choices'][0]['message']['content']
    except (ValueError, KeyError, IndexError, TypeError):
        logger.warning("AI inference returned an unexpected payload")
        raise ServiceUnavailable(UNAVAILABLE_MESSAGE)


def serialize_diagnosis(d: AIDiagnosis) -> dict:
    return {
        'diagnosis_id': d.id,
        'ai_response': d.ai_response,
        'symptoms': d.symptoms,
        'patient_id': d.patient_id,
        'attachments': d.attachments,
        'demo_mode': d.demo_mode,
        'created_at': d.created_at.isoformat(),
    }


def diagnose(doctor, *, symptoms: str, patient_id=None, files=None) -> dict:
    symptoms = (symptoms or '').strip()
    if not symptoms:
        raise ValidationError({'symptoms': 'Symptoms are required'})
    names = validate_attachments(files)

    patient = None
    if patient_id and not is_demo_id(patient_id):
        try:
            patient = PatientProfile.objects.get(pk=int(patient_id))
        except (PatientProfile.DoesNotExist, ValueError, TypeError):
            raise NotFound('Patient not found')

    demo_mode = not settings.AI_API_KEY
    if demo_mode:
        text = DEMO_RESPONSE
    else:
        text = call_inference(build_messages(symptoms, patient_context(patient), len(names)))

    diagnosis = AIDiagnosis.objects.create(
        doctor=doctor, patient=patient, symptoms=symptoms, ai_response=text,
        attachments=names, demo_mode=demo_mode,
    )
    log_action(user=doctor, action='ai_diagnose', object_type='ai_diagnosis', object_id=diagnosis.id,
               detail={'patient_id': getattr(patient, 'id', None), 'files': len(names), 'demo': demo_mode})
    data = serialize_diagnosis(diagnosis)
    # Echo the caller's id so placeholder patients round-trip unchanged.
    data['patient_id'] = patient.id if patient else (patient_id or None)
    return data


def patient_history(doctor, patient_id) -> list[dict]:
    if is_demo_id(patient_id):
        return []
    qs = AIDiagnosis.objects.filter(doctor=doctor, patient_id=patient_id)
    return [serialize_diagnosis(d) for d in qs[:50]]


def doctor_history(doctor) -> list[dict]:
    return [serialize_diagnosis(d) for d in AIDiagnosis.objects.filter(doctor=doctor)[:100]]
