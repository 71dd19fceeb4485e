import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("properties", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="PhaseSyncRun",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("run_type", models.CharField(choices=[("MANUAL", "MANUAL"), ("AUTO", "AUTO"), ("WEBHOOK", "WEBHOOK")], default="AUTO", max_length=10)),
                ("status", models.CharField(choices=[("RUNNING", "RUNNING"), ("SUCCESS", "SUCCESS"), ("PARTIAL", "PARTIAL"), ("FAILED", "FAILED")], default="RUNNING", max_length=10)),
                ("started_at", models.DateTimeField(auto_now_add=True)),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                ("views", models.JSONField(blank=True, default=list)),
                ("stats", models.JSONField(blank=True, default=dict)),
                ("error", models.TextField(blank=True, null=True)),
            ],
            options={
                "db_table": "phase_sync_run",
                "ordering": ["-started_at"],
                "indexes": [
                    models.Index(fields=["started_at"], name="phase_sync__started_0b6f1e_idx"),
                    models.Index(fields=["status"], name="phase_sync__status_5c2a9d_idx"),
                    models.Index(fields=["run_type"], name="phase_sync__run_typ_8e4b7a_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ExtractionTriggerLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("url", models.URLField(max_length=500)),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("success", models.BooleanField(default=False)),
                ("status_code", models.IntegerField(blank=True, null=True)),
                ("attempt", models.PositiveSmallIntegerField(default=1)),
                ("error", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("property", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="extraction_triggers", to="properties.property")),
            ],
            options={
                "db_table": "extraction_trigger_log",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["created_at"], name="extraction__created_3d1c52_idx"),
                    models.Index(fields=["success"], name="extraction__success_a7f0e4_idx"),
                ],
            },
        ),
    ]
