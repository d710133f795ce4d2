from django.http import HttpResponse
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from operations.permissions import CLINICAL_ROLES
from operations.serializers.report import ReportCreateSerializer, ReportListQuerySerializer
from operations.services import reports as svc


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def reports(request):
    if request.method == 'POST':
        if request.user.role != 'doctor':
            raise PermissionDenied('Only doctors can write reports')
        s = ReportCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        report = svc.create_report(request.user, s.validated_data)
        return Response({'ok': True, 'report': report}, status=status.HTTP_201_CREATED)

    q = ReportListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    rows = svc.list_reports(request.user, patient_id=q.validated_data.get('patient_id'),
                            report_type=q.validated_data.get('report_type'))
    return Response({'ok': True, 'reports': rows})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def report_detail(request, report_id):
    report = svc.get_report(request.user, report_id)
    return Response({'ok': True, 'report': svc.serialize_report(report)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def download_report(request, report_id):
    """Stream the report PDF as an attachment."""
    if request.user.role not in CLINICAL_ROLES and request.user.role != 'patient':
        raise PermissionDenied('Not allowed to download reports')
    filename, data = svc.report_pdf(request.user, report_id)
    resp = HttpResponse(data, content_type='application/pdf')
    resp['Content-Disposition'] = f'attachment; filename="{filename}"'
    return resp
