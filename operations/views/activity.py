from rest_framework import serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from operations.permissions import IsHospitalStaff
from operations.services.activity import ACTIVITY_KINDS, recent_activity


class ActivityQuerySerializer(serializers.Serializer):
    kind = serializers.MultipleChoiceField(choices=sorted(ACTIVITY_KINDS), required=False)
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsHospitalStaff])
def activity(request):
    """Newest first; ``?kind=payment&kind=report`` narrows the feed."""
    q = ActivityQuerySerializer(data={
        'kind': request.query_params.getlist('kind'),
        'limit': request.query_params.get('limit') or 20,
    })
    q.is_valid(raise_exception=True)
    entries = recent_activity(request.user, kinds=sorted(q.validated_data.get('kind') or []) or None,
                              limit=q.validated_data['limit'])
    return Response({'ok': True, 'activities': [e.as_dict() for e in entries]})
