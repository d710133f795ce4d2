"""
Pharmacy views: the medicine catalogue and doctors' reorder requests.
"""
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from operations.permissions import IsDoctorRole, IsHospitalStaff, IsPharmacyRole
from operations.serializers.medicine import (
    MedicineCreateSerializer,
    MedicineListQuerySerializer,
    OrderCreateSerializer,
    OrderListQuerySerializer,
    OrderStatusSerializer,
)
from operations.services import medicines as svc


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsHospitalStaff])
def list_medicines(request):
    q = MedicineListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    rows, total = svc.list_medicines(
        search=vd.get('search') or '',
        category=vd.get('category') or '',
        low_stock=vd.get('low_stock', False),
        expiring_soon=vd.get('expiring_soon', False),
        page=vd.get('page') or 1,
        page_size=vd.get('page_size') or 50,
    )
    return Response({'ok': True, 'medicines': rows, 'total': total})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPharmacyRole])
def create_medicine(request):
    s = MedicineCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    medicine = svc.create_medicine(request.user, **s.validated_data)
    return Response({'ok': True, 'medicine': svc.serialize_medicine(medicine)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsHospitalStaff])
def orders(request):
    if request.method == 'POST':
        # Reorder requests come from doctors only.
        if not IsDoctorRole().has_permission(request, None):
            raise PermissionDenied('Only doctors can request medicines')
        s = OrderCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        order = svc.create_order(request.user, **s.validated_data)
        return Response({'ok': True, 'order': svc.serialize_order(order)}, status=status.HTTP_201_CREATED)

    q = OrderListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    rows, total = svc.list_orders(
        request.user,
        status=vd.get('status'),
        priority=vd.get('priority'),
        page=vd.get('page') or 1,
        page_size=vd.get('page_size') or 20,
    )
    return Response({'ok': True, 'orders': rows, 'total': total})


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated, IsHospitalStaff])
def order_detail(request, order_id):
    order = svc.get_order(request.user, order_id)
    if request.method == 'DELETE':
        svc.delete_order(request.user, order)
        return Response({'ok': True})
    return Response({'ok': True, 'order': svc.serialize_order(order)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPharmacyRole])
def order_status(request, order_id):
    s = OrderStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    order = svc.get_order(request.user, order_id)
    order = svc.update_order_status(request.user, order, s.validated_data['status'],
                                    s.validated_data.get('notes') or '')
    return Response({'ok': True, 'order': svc.serialize_order(order)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def cancel_order(request, order_id):
    order = svc.cancel_order(request.user, svc.get_order(request.user, order_id))
    return Response({'ok': True, 'order': svc.serialize_order(order)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsHospitalStaff])
def order_stats(request):
    return Response({'ok': True, 'stats': svc.order_stats(request.user)})
