"""
Appointment views: consultation booking, listing, cancellation and the
video room lifecycle of an appointment.
"""
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from operations.permissions import IsDoctorRole, IsHospitalStaff
from operations.serializers.appointment import (
    AppointmentCancelSerializer,
    AppointmentListQuerySerializer,
    AppointmentStatusSerializer,
    DoctorBookSerializer,
)
from operations.services import appointments as svc
from operations.services import video
from operations.services.demo import DEMO_DOCTORS, merge_with_demo


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def doctor_book(request):
    """Create the appointment behind a call started from the booking flow."""
    s = DoctorBookSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appointment = svc.book_consultation(request.user, s.validated_data)
    return Response({'ok': True, 'appointment': appointment, 'demo': bool(appointment.get('demo'))},
                    status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_appointments(request):
    q = AppointmentListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    rows, total = svc.list_appointments(
        request.user,
        status=vd.get('status'),
        date=vd.get('date'),
        appointment_type=vd.get('appointment_type'),
        page=vd.get('page') or 1,
        page_size=vd.get('page_size') or 20,
    )
    return Response({'ok': True, 'appointments': rows, 'total': total})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def appointment_detail(request, appointment_id):
    appointment = svc.get_appointment(request.user, appointment_id)
    return Response({'ok': True, 'appointment': svc.serialize_appointment(appointment)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_appointment(request, appointment_id):
    s = AppointmentCancelSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appointment = svc.get_appointment(request.user, appointment_id)
    appointment = svc.cancel_appointment(request.user, appointment, s.validated_data.get('reason') or '')
    return Response({'ok': True, 'appointment': svc.serialize_appointment(appointment)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsHospitalStaff])
def appointment_status(request, appointment_id):
    s = AppointmentStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appointment = svc.get_appointment(request.user, appointment_id)
    appointment = svc.update_appointment_status(request.user, appointment, s.validated_data['status'])
    return Response({'ok': True, 'appointment': svc.serialize_appointment(appointment)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsHospitalStaff])
def list_doctors(request):
    """Doctors available for a peer consultation; the caller is left out."""
    rows = svc.list_doctors(exclude=request.user)
    return Response({'ok': True, 'doctors': merge_with_demo(rows, DEMO_DOCTORS)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_video_room(request, appointment_id):
    appointment = svc.get_appointment(request.user, appointment_id)
    return Response({'ok': True, **video.create_room(request.user, appointment)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def video_token(request, appointment_id):
    appointment = svc.get_appointment(request.user, appointment_id)
    return Response({'ok': True, **video.connection_token(request.user, appointment)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def end_video_call(request, appointment_id):
    appointment = svc.get_appointment(request.user, appointment_id)
    return Response({'ok': True, **video.end_call(request.user, appointment)})
