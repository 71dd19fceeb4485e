"""
API views for property workflows.
"""
import logging
from rest_framework import status as http_status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from airtable_sync.exceptions import PropertyLocked

from .serializers import PropertyPhaseSerializer, ResetPropertyRequestSerializer
from .services import find_property, reset_property_to_initial_phase

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def reset_property(request):
    """
    Reset a property to upcoming-settlements: delete its inspections,
    clear workflow fields and push the reset status back to Airtable.
    Only accessible to staff users.
    """
    serializer = ResetPropertyRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=http_status.HTTP_400_BAD_REQUEST)

    property_id = serializer.validated_data['property_id']
    prop = find_property(property_id)
    if prop is None:
        return Response(
            {'detail': f'Property {property_id} not found (searched by unique id and id)'},
            status=http_status.HTTP_404_NOT_FOUND,
        )

    try:
        result = reset_property_to_initial_phase(
            prop,
            push_to_airtable=serializer.validated_data['push_to_airtable'],
        )
    except PropertyLocked:
        return Response(
            {'detail': f'Property {prop.unique_id} is being synced, try again shortly'},
            status=http_status.HTTP_409_CONFLICT,
        )
    except Exception as e:
        logger.error(f"Error resetting property {prop.unique_id}: {e}", exc_info=True)
        return Response(
            {'detail': f'Error resetting property: {e}'},
            status=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return Response({
        'success': True,
        'message': f'Property {prop.unique_id} has been reset to initial phase (upcoming-settlements)',
        'property': PropertyPhaseSerializer(result.property).data,
        'deleted': {
            'inspections': result.cascade.inspections,
            'zones': result.cascade.zones,
            'elements': result.cascade.elements,
        },
        'airtable_updated': result.airtable_updated,
    })
