from rest_framework import serializers
from .models import Property


class PropertyPhaseSerializer(serializers.ModelSerializer):
    """Compact view of a property's phase state, returned by the reset endpoint."""
    reno_phase_display = serializers.CharField(source='get_reno_phase_display', read_only=True)

    class Meta:
        model = Property
        fields = [
            'id', 'unique_id', 'address', 'set_up_status', 'reno_phase', 'reno_phase_display',
            'renovator_name', 'estimated_visit_date', 'start_date', 'estimated_end_date',
            'initial_check_complete', 'final_check_complete', 'updated_at',
        ]
        read_only_fields = fields


class ResetPropertyRequestSerializer(serializers.Serializer):
    property_id = serializers.CharField(max_length=64, help_text="Unique ID From Engagements or internal id")
    push_to_airtable = serializers.BooleanField(default=True)
