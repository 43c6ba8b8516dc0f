from __future__ import annotations

from rest_framework import serializers

from scheduler.errors import ScheduleConfigurationError
from scheduler.schedules import parse_schedule


class AutoRestartSerializer(serializers.Serializer):
    enabled = serializers.BooleanField()
    schedule = serializers.CharField(required=False, allow_blank=False, max_length=200)

    def validate_schedule(self, value: str) -> str:
        """Reject cadences the scheduler would refuse."""
        try:
            parse_schedule(value)
        except ScheduleConfigurationError as exc:
            raise serializers.ValidationError(str(exc)) from exc
        return value.strip()
