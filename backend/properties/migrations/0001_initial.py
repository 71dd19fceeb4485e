import django.db.models.deletion
from django.db import migrations, models


RENO_PHASE_CHOICES = [
    ('upcoming-settlements', 'Upcoming Settlements'),
    ('initial-check', 'Initial Check'),
    ('reno-budget-renovator', 'Pending Budget (Renovator)'),
    ('reno-budget-client', 'Pending Budget (Client)'),
    ('reno-budget-start', 'Reno to Start'),
    ('reno-budget', 'Reno Budget (legacy)'),
    ('upcoming', 'Upcoming'),
    ('reno-in-progress', 'Reno In Progress'),
    ('furnishing', 'Furnishing'),
    ('final-check', 'Final Check'),
    ('pendiente-suministros', 'Pending Utilities'),
    ('cleaning', 'Cleaning'),
    ('furnishing-cleaning', 'Cleaning & Furnishing (legacy)'),
    ('reno-fixes', 'Reno Fixes'),
    ('done', 'Done'),
    ('orphaned', 'Orphaned'),
    ('analisis-supply', 'Análisis de Supply'),
    ('analisis-reno', 'Análisis Reno'),
    ('administracion-reno', 'Administración de Reno'),
    ('pendiente-presupuestos-renovador', 'Pendiente Presupuestos Renovador'),
    ('obra-a-empezar', 'Obra a Empezar'),
    ('obra-en-progreso', 'Obra en Progreso'),
    ('amueblamiento', 'Amueblamiento'),
    ('check-final', 'Check Final'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Project",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("airtable_project_id", models.CharField(help_text="Airtable record id of the project", max_length=32, unique=True)),
                ("name", models.CharField(blank=True, max_length=255, null=True)),
                ("reno_phase", models.CharField(blank=True, choices=RENO_PHASE_CHOICES, max_length=40, null=True)),
                ("project_status", models.CharField(blank=True, max_length=100, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "projects",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Property",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("unique_id", models.CharField(help_text="Unique ID From Engagements (correlation key)", max_length=64, unique=True)),
                ("airtable_record_id", models.CharField(blank=True, db_index=True, help_text="Airtable record id (rec...)", max_length=32, null=True)),
                ("airtable_properties_record_id", models.CharField(blank=True, help_text="Linked record in the Airtable Properties table", max_length=32, null=True)),
                ("set_up_status", models.CharField(blank=True, help_text="Free-text Set Up Status from Airtable", max_length=255, null=True)),
                ("reno_phase", models.CharField(blank=True, choices=RENO_PHASE_CHOICES, db_index=True, max_length=40, null=True)),
                ("address", models.CharField(blank=True, default="", max_length=500)),
                ("property_type", models.CharField(blank=True, max_length=50, null=True)),
                ("stage", models.CharField(blank=True, max_length=100, null=True)),
                ("area_cluster", models.CharField(blank=True, max_length=100, null=True)),
                ("property_unique_id", models.CharField(blank=True, max_length=64, null=True)),
                ("hubspot_id", models.CharField(blank=True, max_length=64, null=True)),
                ("keys_location", models.CharField(blank=True, max_length=255, null=True)),
                ("notes", models.TextField(blank=True, help_text="Set up team notes", null=True)),
                ("pics_urls", models.JSONField(blank=True, default=list)),
                ("client_name", models.CharField(blank=True, max_length=255, null=True)),
                ("client_email", models.CharField(blank=True, max_length=255, null=True)),
                ("renovation_type", models.CharField(blank=True, max_length=100, null=True)),
                ("renovator_name", models.CharField(blank=True, help_text="Assigned contractor", max_length=255, null=True)),
                ("technical_construction", models.CharField(blank=True, max_length=255, null=True)),
                ("responsible_owner", models.CharField(blank=True, max_length=255, null=True)),
                ("next_reno_steps", models.TextField(blank=True, null=True)),
                ("budget_pdf_url", models.TextField(blank=True, help_text="Comma-separated budget document URLs", null=True)),
                ("estimated_visit_date", models.DateField(blank=True, null=True)),
                ("real_settlement_date", models.DateField(blank=True, null=True)),
                ("est_reno_start_date", models.DateField(blank=True, null=True)),
                ("start_date", models.DateField(blank=True, help_text="Reno start date", null=True)),
                ("estimated_end_date", models.DateField(blank=True, help_text="Estimated reno end date", null=True)),
                ("days_to_start_reno", models.IntegerField(blank=True, help_text="Days to start reno since real settlement date", null=True)),
                ("reno_duration", models.IntegerField(blank=True, null=True)),
                ("days_to_property_ready", models.IntegerField(blank=True, null=True)),
                ("days_to_visit", models.IntegerField(blank=True, null=True)),
                ("initial_check_complete", models.BooleanField(default=False)),
                ("final_check_complete", models.BooleanField(default=False)),
                ("last_synced_at", models.DateTimeField(blank=True, help_text="Last time a sync changed this row", null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("project", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="properties", to="properties.project")),
            ],
            options={
                "db_table": "properties",
                "ordering": ["-created_at"],
                "verbose_name_plural": "Properties",
            },
        ),
        migrations.CreateModel(
            name="PropertyInspection",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("inspection_type", models.CharField(choices=[("initial", "Initial"), ("final", "Final")], default="initial", max_length=20)),
                ("inspection_status", models.CharField(blank=True, max_length=30, null=True)),
                ("pdf_url", models.TextField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("property", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="inspections", to="properties.property")),
            ],
            options={
                "db_table": "property_inspections",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="InspectionZone",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("zone_name", models.CharField(max_length=100)),
                ("zone_type", models.CharField(blank=True, default="", max_length=50)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("inspection", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="zones", to="properties.propertyinspection")),
            ],
            options={
                "db_table": "inspection_zones",
            },
        ),
        migrations.CreateModel(
            name="InspectionElement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("element_name", models.CharField(max_length=100)),
                ("condition", models.CharField(blank=True, max_length=50, null=True)),
                ("quantity", models.IntegerField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, null=True)),
                ("image_urls", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("zone", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="elements", to="properties.inspectionzone")),
            ],
            options={
                "db_table": "inspection_elements",
            },
        ),
        migrations.CreateModel(
            name="PropertyDynamicCategory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("category_name", models.CharField(max_length=255)),
                ("percentage", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("activities_text", models.TextField(blank=True, null=True)),
                ("budget_index", models.PositiveSmallIntegerField(default=1)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("property", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="dynamic_categories", to="properties.property")),
            ],
            options={
                "db_table": "property_dynamic_categories",
                "ordering": ["budget_index", "category_name"],
                "verbose_name_plural": "Property dynamic categories",
            },
        ),
    ]
