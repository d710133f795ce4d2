"""
AI symptom checker views.

``diagnose`` accepts multipart form data so attachments can travel with
the symptoms; only their names are kept.
"""
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from operations.permissions import IsDoctorRole
from operations.serializers.ai import DiagnoseSerializer
from operations.services import ai as svc
from operations.services.demo import is_demo_id


@api_view(['POST'])
@parser_classes([MultiPartParser, FormParser, JSONParser])
@permission_classes([IsAuthenticated, IsDoctorRole])
def diagnose(request):
    s = DiagnoseSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    result = svc.diagnose(
        request.user,
        symptoms=s.validated_data['symptoms'],
        patient_id=s.validated_data.get('patient_id') or None,
        files=request.FILES.getlist('files'),
    )
    return Response({'ok': True, **result})

# ScopedRateThrottle reads throttle_scope from the wrapped APIView class
diagnose.cls.throttle_scope = 'ai'


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def patient_history(request, patient_id):
    if not is_demo_id(patient_id) and not str(patient_id).isdigit():
        raise ValidationError({'patient_id': 'Invalid patient id'})
    return Response({'ok': True, 'history': svc.patient_history(request.user, patient_id)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def all_diagnoses(request):
    return Response({'ok': True, 'diagnoses': svc.doctor_history(request.user)})
