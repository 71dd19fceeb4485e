from django.contrib import admin
from .models import (
    Project, Property, PropertyInspection, InspectionZone, InspectionElement, PropertyDynamicCategory
)


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ['airtable_project_id', 'name', 'reno_phase', 'project_status', 'created_at']
    list_filter = ['reno_phase', 'project_status']
    search_fields = ['airtable_project_id', 'name']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = ['unique_id', 'address', 'reno_phase', 'set_up_status', 'renovator_name', 'last_synced_at']
    list_filter = ['reno_phase', 'property_type', 'area_cluster', 'initial_check_complete', 'final_check_complete']
    search_fields = ['unique_id', 'address', 'airtable_record_id', 'client_name', 'renovator_name']
    readonly_fields = ['created_at', 'updated_at', 'last_synced_at']

    fieldsets = (
        ('Airtable', {
            'fields': ('unique_id', 'airtable_record_id', 'airtable_properties_record_id')
        }),
        ('Phase', {
            'fields': ('set_up_status', 'reno_phase')
        }),
        ('Basic Information', {
            'fields': ('address', 'property_type', 'project', 'stage', 'area_cluster', 'property_unique_id',
                       'hubspot_id', 'keys_location', 'notes', 'pics_urls')
        }),
        ('Client', {
            'fields': ('client_name', 'client_email')
        }),
        ('Renovation', {
            'fields': ('renovation_type', 'renovator_name', 'technical_construction', 'responsible_owner',
                       'next_reno_steps', 'budget_pdf_url')
        }),
        ('Schedule', {
            'fields': ('estimated_visit_date', 'real_settlement_date', 'est_reno_start_date', 'start_date',
                       'estimated_end_date', 'days_to_start_reno', 'reno_duration', 'days_to_property_ready',
                       'days_to_visit')
        }),
        ('Checklists', {
            'fields': ('initial_check_complete', 'final_check_complete')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at', 'last_synced_at')
        }),
    )


@admin.register(PropertyInspection)
class PropertyInspectionAdmin(admin.ModelAdmin):
    list_display = ['property', 'inspection_type', 'inspection_status', 'completed_at', 'created_at']
    list_filter = ['inspection_type', 'inspection_status']
    search_fields = ['property__unique_id', 'property__address']
    readonly_fields = ['created_at']


@admin.register(InspectionZone)
class InspectionZoneAdmin(admin.ModelAdmin):
    list_display = ['zone_name', 'zone_type', 'inspection', 'created_at']
    search_fields = ['zone_name', 'inspection__property__unique_id']


@admin.register(InspectionElement)
class InspectionElementAdmin(admin.ModelAdmin):
    list_display = ['element_name', 'condition', 'quantity', 'zone']
    list_filter = ['condition']
    search_fields = ['element_name', 'zone__zone_name']


@admin.register(PropertyDynamicCategory)
class PropertyDynamicCategoryAdmin(admin.ModelAdmin):
    list_display = ['property', 'category_name', 'percentage', 'budget_index', 'created_at']
    list_filter = ['budget_index']
    search_fields = ['property__unique_id', 'category_name']
    readonly_fields = ['created_at', 'updated_at']
