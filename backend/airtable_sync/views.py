"""
API views for the Airtable phase sync.
"""
import logging
from rest_framework import status as http_status
from rest_framework import viewsets
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.filters import OrderingFilter
from rest_framework.response import Response
from rest_framework_simplejwt.authentication import JWTAuthentication
from django.conf import settings
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend

from .authentication import CRON_AUTH, CronSecretAuthentication, WebhookSecretAuthentication
from .models import PhaseSyncRun
from .pagination import StandardResultsSetPagination
from .permissions import IsAirtableWebhook, IsCronOrStaff, IsStaffUser
from .phase_views import get_phase_views
from .reporting import STATUS_FAILED, STATUS_PARTIAL, STATUS_REJECTED, STATUS_SUCCESS
from .serializers import PhaseSyncRunSerializer, SyncRequestSerializer
from .sync_engine import run_phase_sync, run_webhook_sync
from .tasks import sync_airtable_phases_task, trigger_categories_extraction_task
from .triggers import trigger_pending_extractions

logger = logging.getLogger(__name__)


RESULT_HTTP_STATUS = {
    STATUS_SUCCESS: http_status.HTTP_200_OK,
    STATUS_PARTIAL: http_status.HTTP_200_OK,
    STATUS_REJECTED: http_status.HTTP_409_CONFLICT,
    STATUS_FAILED: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _result_response(result):
    return Response(result.to_dict(), status=RESULT_HTTP_STATUS.get(result.status, http_status.HTTP_500_INTERNAL_SERVER_ERROR))


@api_view(['GET', 'POST'])
@authentication_classes([CronSecretAuthentication, JWTAuthentication])
@permission_classes([IsCronOrStaff])
def sync_airtable_phases(request):
    """
    Run the full phase sync (every view, most advanced phase first).
    Called by the scheduler with CRON_SECRET, or manually by staff.
    Body: {"views": [...], "async": true} both optional.
    """
    serializer = SyncRequestSerializer(data=request.data if request.method == 'POST' else {})
    if not serializer.is_valid():
        return Response(serializer.errors, status=http_status.HTTP_400_BAD_REQUEST)

    view_names = serializer.validated_data.get('views') or None
    try:
        get_phase_views(view_names)
    except ValueError as e:
        return Response({'detail': str(e)}, status=http_status.HTTP_400_BAD_REQUEST)

    run_type = PhaseSyncRun.RUN_AUTO if request.auth == CRON_AUTH else PhaseSyncRun.RUN_MANUAL
    logger.info(f"Phase sync requested ({run_type}) views={view_names or 'all'}")

    if serializer.validated_data.get('run_async'):
        task = sync_airtable_phases_task.delay(run_type=run_type, views=view_names)
        return Response(
            {'detail': 'Phase sync queued', 'task_id': task.id},
            status=http_status.HTTP_202_ACCEPTED,
        )

    result = run_phase_sync(run_type=run_type, views=view_names)
    return _result_response(result)


def extract_webhook_records(payload, properties_table_id):
    """
    Record ids to re-sync from a webhook body.

    Accepts the simple ``{"tableId": ..., "recordId": ...}`` form (``recordIds`` for several)
    and Airtable's change notification, where ids sit under
    ``changedTablesById.<table>.changedRecordsById`` / ``createdRecordsById``.
    Returns (table_id, [record ids]).
    """
    if not isinstance(payload, dict):
        return properties_table_id, []

    if payload.get('recordId') or payload.get('recordIds'):
        table_id = payload.get('tableId') or properties_table_id
        record_ids = list(payload.get('recordIds') or [])
        if payload.get('recordId'):
            record_ids.insert(0, payload['recordId'])
        return table_id, [str(r) for r in record_ids if r]

    body = payload.get('payload') if isinstance(payload.get('payload'), dict) else payload
    tables = body.get('changedTablesById') or {}
    record_ids = []
    if isinstance(tables, dict):
        table_changes = tables.get(properties_table_id) or {}
        for key in ('changedRecordsById', 'createdRecordsById'):
            records = table_changes.get(key) or {}
            if isinstance(records, dict):
                record_ids.extend(records.keys())
    return properties_table_id, record_ids


@api_view(['GET', 'POST'])
@authentication_classes([WebhookSecretAuthentication])
@permission_classes([IsAirtableWebhook])
def airtable_webhook(request):
    """
    Airtable change notification. Re-syncs the changed property records only.
    GET is a health check.
    """
    if request.method == 'GET':
        return Response({
            'status': 'ok',
            'message': 'Airtable webhook endpoint is active',
            'timestamp': timezone.now().isoformat(),
        })

    properties_table_id = getattr(settings, 'AIRTABLE_PROPERTIES_TABLE_ID', '')
    table_id, record_ids = extract_webhook_records(request.data, properties_table_id)
    if not record_ids:
        return Response({'detail': 'No property records in payload'}, status=http_status.HTTP_400_BAD_REQUEST)

    logger.info(f"Airtable webhook: {len(record_ids)} record(s) from table {table_id}")
    result = run_webhook_sync(table_id=table_id, record_ids=record_ids)
    return _result_response(result)


@api_view(['POST'])
@authentication_classes([CronSecretAuthentication, JWTAuthentication])
@permission_classes([IsCronOrStaff])
def trigger_categories_extraction(request):
    """
    Send every reno-in-progress property with a budget and no categories to n8n.
    """
    if not getattr(settings, 'N8N_CATEGORIES_WEBHOOK_URL', ''):
        return Response(
            {
                'detail': 'n8n webhook not configured. Please set N8N_CATEGORIES_WEBHOOK_URL in settings.',
                'error': 'Configuration missing',
            },
            status=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if request.data.get('async'):
        task = trigger_categories_extraction_task.delay()
        return Response({'detail': 'Extraction sweep queued', 'task_id': task.id}, status=http_status.HTTP_202_ACCEPTED)

    try:
        stats = trigger_pending_extractions()
    except Exception as e:
        logger.error(f"Categories extraction sweep failed: {e}", exc_info=True)
        return Response({'detail': f'Error triggering extraction: {e}'}, status=http_status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response({'success': True, **stats})


class PhaseSyncRunViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = PhaseSyncRun.objects.all()
    serializer_class = PhaseSyncRunSerializer
    permission_classes = [IsStaffUser]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_fields = ['status', 'run_type']
    ordering_fields = ['started_at', 'finished_at']
    ordering = ['-started_at']
    pagination_class = StandardResultsSetPagination
