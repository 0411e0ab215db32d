from django.http import JsonResponse
from django.views.decorators.http import require_http_methods
from django.views.decorators.csrf import csrf_exempt

from users.decorators import authenticate_token, json_error
from users.roles import Role
from .models import ChangeEvent, change_event_to_dict
from .signals import TRACKED_MODELS

CHANGES_LIMIT = 100
TRACKED_TABLES = {table for table, _ in TRACKED_MODELS.values()}


@csrf_exempt
@require_http_methods(["GET"])
@authenticate_token
def list_changes(request):
    """
    Poll the change log.

    `since` is the id of the last event the client has seen; `table`
    narrows to one table. Events come back oldest first. Row snapshots are
    only included for admins, everyone else is expected to refetch through
    their scoped endpoints.
    """
    changes = ChangeEvent.objects.all()

    table = request.GET.get('table')
    if table:
        if table not in TRACKED_TABLES:
            return json_error(f"Unknown table: {table}", 0x82)
        changes = changes.filter(table=table)

    since = request.GET.get('since')
    if since:
        try:
            changes = changes.filter(id__gt=int(since)).order_by('id')[:CHANGES_LIMIT]
        except ValueError:
            return json_error("since must be an event id", 0x82)
    else:
        # Latest window, returned oldest first
        changes = reversed(list(changes.order_by('-id')[:CHANGES_LIMIT]))

    include_payload = request.identity.role == Role.MASTER_ADMIN
    data = [change_event_to_dict(c, include_payload=include_payload) for c in changes]

    return JsonResponse({
        'success': True,
        'count': len(data),
        'last_id': data[-1]['id'] if data else (int(since) if since else None),
        'changes': data
    })
