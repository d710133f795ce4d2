"""
Patient intake views.

Hospital staff list, register and edit patients; only administrators may
delete a record. Lists carry demo patients after the real ones when the
demo fallback is switched on.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from operations.permissions import ADMIN_ROLES, IsHospitalStaff
from operations.serializers.patient import (
    PatientCreateSerializer,
    PatientListQuerySerializer,
    PatientUpdateSerializer,
)
from operations.services import patients as svc


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsHospitalStaff])
def patients(request):
    if request.method == 'POST':
        s = PatientCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        patient = svc.create_patient(request.user, **s.validated_data)
        return Response({'ok': True, 'patient': svc.serialize_patient(patient)}, status=status.HTTP_201_CREATED)

    q = PatientListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    rows, total = svc.list_patients(
        search=vd.get('search') or '',
        status=vd.get('status'),
        page=vd.get('page') or 1,
        page_size=vd.get('page_size') or 20,
    )
    return Response({'ok': True, 'patients': rows, 'total': total})


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsHospitalStaff])
def patient_detail(request, patient_id):
    patient = svc.get_patient(patient_id)
    if request.method == 'GET':
        return Response({'ok': True, 'patient': svc.serialize_patient(patient)})

    if request.method == 'DELETE':
        if request.user.role not in ADMIN_ROLES:
            raise PermissionDenied('Only administrators can delete patients')
        svc.delete_patient(request.user, patient)
        return Response({'ok': True})

    s = PatientUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = svc.update_patient(request.user, patient, **s.validated_data)
    return Response({'ok': True, 'patient': svc.serialize_patient(patient)})
