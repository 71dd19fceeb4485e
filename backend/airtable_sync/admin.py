from django.contrib import admin
from .models import PhaseSyncRun, ExtractionTriggerLog


@admin.register(PhaseSyncRun)
class PhaseSyncRunAdmin(admin.ModelAdmin):
    list_display = ['id', 'run_type', 'status', 'started_at', 'finished_at']
    list_filter = ['status', 'run_type']
    readonly_fields = ['run_type', 'status', 'started_at', 'finished_at', 'views', 'stats', 'error']
    date_hierarchy = 'started_at'


@admin.register(ExtractionTriggerLog)
class ExtractionTriggerLogAdmin(admin.ModelAdmin):
    list_display = ['property', 'success', 'status_code', 'attempt', 'created_at']
    list_filter = ['success', 'status_code']
    search_fields = ['property__unique_id', 'property__address']
    readonly_fields = ['property', 'url', 'payload', 'success', 'status_code', 'attempt', 'error', 'created_at']
