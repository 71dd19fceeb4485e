from django.db import models

from properties.models import Property


class PhaseSyncRun(models.Model):
    """
    Tracks each Airtable phase sync run (scheduled, manual or webhook) for audit + troubleshooting.
    Invocations rejected by the single-flight lock are not recorded.
    """
    RUN_MANUAL = "MANUAL"
    RUN_AUTO = "AUTO"
    RUN_WEBHOOK = "WEBHOOK"

    STATUS_RUNNING = "RUNNING"
    STATUS_SUCCESS = "SUCCESS"
    STATUS_PARTIAL = "PARTIAL"
    STATUS_FAILED = "FAILED"

    RUN_TYPE_CHOICES = [(RUN_MANUAL, RUN_MANUAL), (RUN_AUTO, RUN_AUTO), (RUN_WEBHOOK, RUN_WEBHOOK)]
    STATUS_CHOICES = [
        (STATUS_RUNNING, STATUS_RUNNING),
        (STATUS_SUCCESS, STATUS_SUCCESS),
        (STATUS_PARTIAL, STATUS_PARTIAL),
        (STATUS_FAILED, STATUS_FAILED),
    ]

    run_type = models.CharField(max_length=10, choices=RUN_TYPE_CHOICES, default=RUN_AUTO)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_RUNNING)

    started_at = models.DateTimeField(auto_now_add=True)
    finished_at = models.DateTimeField(blank=True, null=True)

    views = models.JSONField(default=list, blank=True)  # list[str] of view names
    stats = models.JSONField(default=dict, blank=True)
    error = models.TextField(blank=True, null=True)

    class Meta:
        db_table = "phase_sync_run"
        ordering = ["-started_at"]
        indexes = [
            models.Index(fields=["started_at"], name="phase_sync__started_0b6f1e_idx"),
            models.Index(fields=["status"], name="phase_sync__status_5c2a9d_idx"),
            models.Index(fields=["run_type"], name="phase_sync__run_typ_8e4b7a_idx"),
        ]

    def __str__(self) -> str:
        return f"PhaseSyncRun({self.id}) {self.run_type} {self.status}"


class ExtractionTriggerLog(models.Model):
    """
    One row per HTTP attempt against the n8n categories extraction webhook, successful or not.
    """
    property = models.ForeignKey(Property, on_delete=models.CASCADE, related_name="extraction_triggers")
    url = models.URLField(max_length=500)
    payload = models.JSONField(default=dict, blank=True)
    success = models.BooleanField(default=False)
    status_code = models.IntegerField(blank=True, null=True)
    attempt = models.PositiveSmallIntegerField(default=1)
    error = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "extraction_trigger_log"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["created_at"], name="extraction__created_3d1c52_idx"),
            models.Index(fields=["success"], name="extraction__success_a7f0e4_idx"),
        ]

    def __str__(self) -> str:
        outcome = "ok" if self.success else "failed"
        return f"ExtractionTrigger({self.property_id}) {outcome}"
