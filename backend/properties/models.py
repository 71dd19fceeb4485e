from django.db import models


class RenoPhase(models.TextChoices):
    """
    Kanban phases a property (or project) can sit in.
    The set is closed: the sync engine never writes a value outside it.
    """
    UPCOMING_SETTLEMENTS = 'upcoming-settlements', 'Upcoming Settlements'
    INITIAL_CHECK = 'initial-check', 'Initial Check'
    RENO_BUDGET_RENOVATOR = 'reno-budget-renovator', 'Pending Budget (Renovator)'
    RENO_BUDGET_CLIENT = 'reno-budget-client', 'Pending Budget (Client)'
    RENO_BUDGET_START = 'reno-budget-start', 'Reno to Start'
    RENO_BUDGET = 'reno-budget', 'Reno Budget (legacy)'
    UPCOMING = 'upcoming', 'Upcoming'
    RENO_IN_PROGRESS = 'reno-in-progress', 'Reno In Progress'
    FURNISHING = 'furnishing', 'Furnishing'
    FINAL_CHECK = 'final-check', 'Final Check'
    PENDIENTE_SUMINISTROS = 'pendiente-suministros', 'Pending Utilities'
    CLEANING = 'cleaning', 'Cleaning'
    FURNISHING_CLEANING = 'furnishing-cleaning', 'Cleaning & Furnishing (legacy)'
    RENO_FIXES = 'reno-fixes', 'Reno Fixes'
    DONE = 'done', 'Done'
    ORPHANED = 'orphaned', 'Orphaned'
    # Project kanban
    ANALISIS_SUPPLY = 'analisis-supply', 'Análisis de Supply'
    ANALISIS_RENO = 'analisis-reno', 'Análisis Reno'
    ADMINISTRACION_RENO = 'administracion-reno', 'Administración de Reno'
    PENDIENTE_PRESUPUESTOS_RENOVADOR = 'pendiente-presupuestos-renovador', 'Pendiente Presupuestos Renovador'
    OBRA_A_EMPEZAR = 'obra-a-empezar', 'Obra a Empezar'
    OBRA_EN_PROGRESO = 'obra-en-progreso', 'Obra en Progreso'
    AMUEBLAMIENTO = 'amueblamiento', 'Amueblamiento'
    CHECK_FINAL = 'check-final', 'Check Final'


PROPERTY_TYPES_WITH_PROJECT = ('Project', 'WIP', 'New Build')


class Project(models.Model):
    """
    Parent grouping for Project / WIP / New Build properties.
    Maintained outside the phase sync; the sync only links properties to it.
    """
    airtable_project_id = models.CharField(max_length=32, unique=True, help_text="Airtable record id of the project")
    name = models.CharField(max_length=255, null=True, blank=True)
    reno_phase = models.CharField(max_length=40, choices=RenoPhase.choices, null=True, blank=True)
    project_status = models.CharField(max_length=100, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'projects'
        ordering = ['-created_at']

    def __str__(self):
        return self.name or self.airtable_project_id


class Property(models.Model):
    """
    One renovation unit as shown on the kanban.
    Rows are created and kept current by the Airtable phase sync, keyed by unique_id.
    """
    # Correlation with Airtable
    unique_id = models.CharField(max_length=64, unique=True, help_text="Unique ID From Engagements (correlation key)")
    airtable_record_id = models.CharField(max_length=32, null=True, blank=True, db_index=True, help_text="Airtable record id (rec...)")
    airtable_properties_record_id = models.CharField(max_length=32, null=True, blank=True, help_text="Linked record in the Airtable Properties table")

    # Phase
    set_up_status = models.CharField(max_length=255, null=True, blank=True, help_text="Free-text Set Up Status from Airtable")
    reno_phase = models.CharField(max_length=40, choices=RenoPhase.choices, null=True, blank=True, db_index=True)

    # Basic information
    address = models.CharField(max_length=500, blank=True, default='')
    property_type = models.CharField(max_length=50, null=True, blank=True)
    project = models.ForeignKey(Project, on_delete=models.SET_NULL, null=True, blank=True, related_name='properties')
    stage = models.CharField(max_length=100, null=True, blank=True)
    area_cluster = models.CharField(max_length=100, null=True, blank=True)
    property_unique_id = models.CharField(max_length=64, null=True, blank=True)
    hubspot_id = models.CharField(max_length=64, null=True, blank=True)
    keys_location = models.CharField(max_length=255, null=True, blank=True)
    notes = models.TextField(null=True, blank=True, help_text="Set up team notes")
    pics_urls = models.JSONField(default=list, blank=True)

    # Client
    client_name = models.CharField(max_length=255, null=True, blank=True)
    client_email = models.CharField(max_length=255, null=True, blank=True)

    # Renovation
    renovation_type = models.CharField(max_length=100, null=True, blank=True)
    renovator_name = models.CharField(max_length=255, null=True, blank=True, help_text="Assigned contractor")
    technical_construction = models.CharField(max_length=255, null=True, blank=True)
    responsible_owner = models.CharField(max_length=255, null=True, blank=True)
    next_reno_steps = models.TextField(null=True, blank=True)
    budget_pdf_url = models.TextField(null=True, blank=True, help_text="Comma-separated budget document URLs")

    # Dates
    estimated_visit_date = models.DateField(null=True, blank=True)
    real_settlement_date = models.DateField(null=True, blank=True)
    est_reno_start_date = models.DateField(null=True, blank=True)
    start_date = models.DateField(null=True, blank=True, help_text="Reno start date")
    estimated_end_date = models.DateField(null=True, blank=True, help_text="Estimated reno end date")

    # Durations (days)
    days_to_start_reno = models.IntegerField(null=True, blank=True, help_text="Days to start reno since real settlement date")
    reno_duration = models.IntegerField(null=True, blank=True)
    days_to_property_ready = models.IntegerField(null=True, blank=True)
    days_to_visit = models.IntegerField(null=True, blank=True)

    # Readiness flags, computed by the checklist workflows
    initial_check_complete = models.BooleanField(default=False)
    final_check_complete = models.BooleanField(default=False)

    # Metadata
    last_synced_at = models.DateTimeField(null=True, blank=True, help_text="Last time a sync changed this row")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'properties'
        ordering = ['-created_at']
        verbose_name_plural = 'Properties'

    def __str__(self):
        return f"{self.unique_id}: {self.address or 'N/A'}"

    @property
    def budget_urls(self):
        if not self.budget_pdf_url:
            return []
        return [
            url.strip()
            for url in self.budget_pdf_url.split(',')
            if url.strip().startswith(('http://', 'https://'))
        ]


class PropertyInspection(models.Model):
    INSPECTION_INITIAL = 'initial'
    INSPECTION_FINAL = 'final'

    property = models.ForeignKey(Property, on_delete=models.PROTECT, related_name='inspections')
    inspection_type = models.CharField(
        max_length=20,
        choices=[(INSPECTION_INITIAL, 'Initial'), (INSPECTION_FINAL, 'Final')],
        default=INSPECTION_INITIAL,
    )
    inspection_status = models.CharField(max_length=30, null=True, blank=True)
    pdf_url = models.TextField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'property_inspections'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.property_id} {self.inspection_type} inspection"


class InspectionZone(models.Model):
    inspection = models.ForeignKey(PropertyInspection, on_delete=models.PROTECT, related_name='zones')
    zone_name = models.CharField(max_length=100)
    zone_type = models.CharField(max_length=50, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'inspection_zones'

    def __str__(self):
        return self.zone_name


class InspectionElement(models.Model):
    zone = models.ForeignKey(InspectionZone, on_delete=models.PROTECT, related_name='elements')
    element_name = models.CharField(max_length=100)
    condition = models.CharField(max_length=50, null=True, blank=True)
    quantity = models.IntegerField(null=True, blank=True)
    notes = models.TextField(null=True, blank=True)
    image_urls = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'inspection_elements'

    def __str__(self):
        return self.element_name


class PropertyDynamicCategory(models.Model):
    """
    Budget categories extracted from the budget PDF by the n8n workflow.
    Written by the downstream job; the sync only checks whether any exist.
    """
    property = models.ForeignKey(Property, on_delete=models.CASCADE, related_name='dynamic_categories')
    category_name = models.CharField(max_length=255)
    percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    activities_text = models.TextField(null=True, blank=True)
    budget_index = models.PositiveSmallIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'property_dynamic_categories'
        ordering = ['budget_index', 'category_name']
        verbose_name_plural = 'Property dynamic categories'

    def __str__(self):
        return f"{self.property_id}: {self.category_name}"
