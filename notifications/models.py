from datetime import timedelta

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils.timezone import now


class ChangeEvent(models.Model):
    """One row per insert, update or delete on a tracked table."""
    EVENT_CHOICES = [
        ('INSERT', 'Insert'),
        ('UPDATE', 'Update'),
        ('DELETE', 'Delete'),
    ]

    table = models.CharField(max_length=50, db_index=True)
    event = models.CharField(max_length=10, choices=EVENT_CHOICES)
    record_id = models.BigIntegerField()
    payload = models.JSONField(default=dict, encoder=DjangoJSONEncoder)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['id']
        indexes = [
            models.Index(fields=['table', 'id']),
        ]

    def __str__(self):
        return f"{self.event} {self.table}#{self.record_id}"

    @classmethod
    def prune(cls, retention_days=None):
        """Delete events older than the retention window; returns how many went."""
        if retention_days is None:
            retention_days = settings.CHANGE_LOG_RETENTION_DAYS
        cutoff = now() - timedelta(days=retention_days)
        deleted, _ = cls.objects.filter(created_at__lt=cutoff).delete()
        return deleted


def change_event_to_dict(change, include_payload=True):
    data = {
        'id': change.id,
        'table': change.table,
        'event': change.event,
        'record_id': change.record_id,
        'created_at': change.created_at.isoformat() if change.created_at else None,
    }
    if include_payload:
        data['payload'] = change.payload
    return data
