from rest_framework import serializers
from .models import PhaseSyncRun, ExtractionTriggerLog


class PhaseSyncRunSerializer(serializers.ModelSerializer):
    duration_seconds = serializers.SerializerMethodField()

    class Meta:
        model = PhaseSyncRun
        fields = '__all__'
        read_only_fields = ['started_at', 'finished_at']

    def get_duration_seconds(self, obj):
        if not obj.finished_at:
            return None
        return (obj.finished_at - obj.started_at).total_seconds()


class ExtractionTriggerLogSerializer(serializers.ModelSerializer):
    unique_id = serializers.CharField(source='property.unique_id', read_only=True)

    class Meta:
        model = ExtractionTriggerLog
        fields = '__all__'
        read_only_fields = ['created_at']


class SyncRequestSerializer(serializers.Serializer):
    views = serializers.ListField(child=serializers.CharField(max_length=64), required=False, allow_empty=True)
    run_async = serializers.BooleanField(required=False, default=False)

    def to_internal_value(self, data):
        # the scheduler and the frontend both send {"async": true}
        if hasattr(data, 'get') and 'async' in data and 'run_async' not in data:
            data = dict(data.items())
            data['run_async'] = data.pop('async')
        return super().to_internal_value(data)
