from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from operations.permissions import IsAdminRole, IsClinicalStaff, IsHospitalStaff
from operations.serializers.bed import (
    BedAllocateSerializer,
    BedCreateSerializer,
    BedListQuerySerializer,
    BedStatusSerializer,
)
from operations.services import beds as svc


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsHospitalStaff])
def list_beds(request):
    q = BedListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    rows = svc.list_beds(status=vd.get('status'), ward_type=vd.get('ward_type'),
                         floor_number=vd.get('floor_number'))
    return Response({'ok': True, 'beds': rows, 'statistics': svc.bed_statistics()})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsHospitalStaff])
def bed_availability(request):
    return Response({'ok': True, 'wards': svc.availability_by_ward(), 'statistics': svc.bed_statistics()})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def allocate_bed(request):
    s = BedAllocateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    bed = svc.allocate_bed(request.user, **s.validated_data)
    return Response({'ok': True, 'bed': bed, 'demo': bool(bed.get('demo'))})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def discharge_bed(request, bed_id):
    result = svc.discharge_bed(request.user, bed_id=bed_id)
    return Response({'ok': True, **result})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsHospitalStaff])
def bed_status(request, bed_id):
    s = BedStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    bed = svc.change_bed_status(request.user, bed_id=bed_id, **s.validated_data)
    return Response({'ok': True, 'bed': bed})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def create_bed(request):
    s = BedCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    bed = svc.create_bed(request.user, **s.validated_data)
    return Response({'ok': True, 'bed': bed}, status=status.HTTP_201_CREATED)
