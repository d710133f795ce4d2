"""
Payment views.

Checkout orders are opened with ``create-order`` and completed through
``verify`` once the hosted widget reports success. Cash and UPI
collections, including the hospital fee bill, go through ``record``.
"""
from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from operations.permissions import IsAdminRole, IsHospitalStaff
from operations.serializers.common import PageQuerySerializer
from operations.serializers.payment import (
    CreateOrderSerializer,
    OutstandingQuerySerializer,
    RecordPaymentSerializer,
    TransactionQuerySerializer,
    VerifyPaymentSerializer,
)
from operations.services import payments as svc
from operations.services.billing import EQUIPMENT_OPTIONS, subscription_item


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_order(request):
    s = CreateOrderSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    order = svc.create_checkout_order(request.user, **s.validated_data)
    return Response({'ok': True, **order}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def verify_payment(request):
    s = VerifyPaymentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    payment = svc.verify_payment(request.user, **s.validated_data)
    return Response({'ok': True, 'payment': svc.serialize_payment(payment)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsHospitalStaff])
def record_payment(request):
    s = RecordPaymentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = dict(s.validated_data)
    patient = svc.resolve_patient(vd.pop('patient_id', None))
    payment = svc.record_payment(request.user, patient=patient, **vd)
    return Response({'ok': True, 'payment': svc.serialize_payment(payment)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def payment_history(request):
    q = PageQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    rows, total = svc.payment_history(request.user, page=q.validated_data.get('page') or 1,
                                      page_size=q.validated_data.get('page_size') or 20)
    return Response({'ok': True, 'payments': rows, 'total': total})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def payment_detail(request, payment_id):
    return Response({'ok': True, 'payment': svc.serialize_payment(svc.get_payment(request.user, payment_id))})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsHospitalStaff])
def outstanding(request):
    q = OutstandingQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    rows, total = svc.outstanding(request.user, search=vd.get('search') or '', filter=vd['filter'],
                                  page=vd.get('page') or 1, page_size=vd.get('page_size') or 50)
    return Response({'ok': True, 'payments': rows, 'total': total})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsHospitalStaff])
def transactions(request):
    q = TransactionQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    rows, summary = svc.transactions(
        request.user,
        start_date=vd.get('start_date'),
        end_date=vd.get('end_date'),
        status=vd.get('status'),
        kind=vd.get('kind'),
        page=vd.get('page') or 1,
        page_size=vd.get('page_size') or 50,
    )
    return Response({'ok': True, 'transactions': rows, 'summary': summary})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def payment_stats(request):
    q = TransactionQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    stats = svc.stats_overview(request.user, start_date=q.validated_data.get('start_date'),
                               end_date=q.validated_data.get('end_date'))
    return Response({'ok': True, 'stats': stats})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def hospital_fee_options(request):
    """Lines for the hospital fee bill: the mandatory subscription plus equipment."""
    return Response({
        'ok': True,
        'subscription': subscription_item(settings.HOSPITAL_SUBSCRIPTION_FEE).as_dict(),
        'equipment': [o.as_dict() for o in EQUIPMENT_OPTIONS],
        'upi_id': settings.DOCTOR_UPI_ID,
    })
