import logging
import secrets

from django.conf import settings
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from operations.models import Appointment

from .audit import log_action
from .events import broadcast

logger = logging.getLogger(__name__)

_ROOM_READY_STATUSES = (Appointment.STATUS_CONFIRMED, Appointment.STATUS_IN_PROGRESS)


def _participant_ids(appointment: Appointment) -> set:
    ids = {appointment.doctor_id, appointment.peer_doctor_id}
    if appointment.patient_id and appointment.patient.user_id:
        ids.add(appointment.patient.user_id)
    ids.discard(None)
    return ids


def _ensure_participant(user, appointment: Appointment) -> None:
    if user.id not in _participant_ids(appointment):
        raise PermissionDenied('You are not a participant of this appointment')


def create_room(user, appointment: Appointment) -> dict:
    _ensure_participant(user, appointment)
    if appointment.consultation_mode != Appointment.MODE_VIDEO:
        raise ValidationError('This is not a video appointment')
    if appointment.status not in _ROOM_READY_STATUSES:
        raise ValidationError('Appointment must be confirmed before starting a call')

    if not appointment.video_room_id:
        appointment.video_room_id = f"room-{appointment.id}-{secrets.token_hex(4)}"
    if appointment.status != Appointment.STATUS_IN_PROGRESS:
        appointment.status = Appointment.STATUS_IN_PROGRESS
        appointment.video_call_started_at = timezone.now()
    appointment.save(update_fields=['video_room_id', 'status', 'video_call_started_at'])
    log_action(user=user, action='video_room', object_type='appointment', object_id=appointment.id,
               detail={'room_id': appointment.video_room_id})
    broadcast('appointment.updated', appointment_id=appointment.id, status=appointment.status)
    return {
        'room_id': appointment.video_room_id,
        'room_url': appointment.video_room_url,
        'appointment_id': appointment.id,
        'started_at': appointment.video_call_started_at.isoformat(),
    }


def connection_token(user, appointment: Appointment) -> dict:
    """Credentials a client needs to join the room; media negotiation happens peer side."""
    _ensure_participant(user, appointment)
    if not appointment.video_room_id:
        raise ValidationError('The call has not been started')
    return {
        'room_id': appointment.video_room_id,
        'user_id': user.id,
        'user_name': user.get_full_name() or user.username,
        'token': secrets.token_urlsafe(24),
        'ice_servers': [{'urls': url} for url in settings.VIDEO_ICE_SERVERS],
    }


def end_call(user, appointment: Appointment) -> dict:
    _ensure_participant(user, appointment)
    if appointment.status != Appointment.STATUS_IN_PROGRESS:
        raise ValidationError('No call in progress for this appointment')
    appointment.status = Appointment.STATUS_COMPLETED
    appointment.video_call_ended_at = timezone.now()
    appointment.save(update_fields=['status', 'video_call_ended_at'])
    started = appointment.video_call_started_at or appointment.video_call_ended_at
    duration = int((appointment.video_call_ended_at - started).total_seconds())
    log_action(user=user, action='video_end', object_type='appointment', object_id=appointment.id,
               detail={'duration_seconds': duration})
    broadcast('appointment.updated', appointment_id=appointment.id, status=appointment.status)
    return {'appointment_id': appointment.id, 'duration_seconds': duration}
