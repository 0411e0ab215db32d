from django.db import transaction

from .feed import feed
from .models import ChangeEvent, change_event_to_dict


def record_change(table, event, record_id, payload):
    """Append to the change log and publish once the surrounding transaction commits."""
    change = ChangeEvent.objects.create(
        table=table,
        event=event,
        record_id=record_id,
        payload=payload,
    )
    message = change_event_to_dict(change)
    transaction.on_commit(lambda: feed.publish(message))
    return change
