import logging

from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from dashboard.snapshot import scoped_view
from users.decorators import authenticate_token, parse_body, roles_required, json_error, validation_error
from users.roles import Role
from .metrics import (
    compute_officer_metrics, compute_performance_scores, monthly_breakdown,
    summarize_metrics, top_officers, ScoringWeights,
)
from .models import Placement, placement_to_dict
from .serializers import PlacementSerializer

logger = logging.getLogger(__name__)


def _out_of_scope():
    return json_error("Insufficient permission to access this data", 0x73, status=403)


def _write_in_scope(identity, placement):
    """Whether `identity` may create or change `placement` as it now stands."""
    role = identity.role
    if role == Role.MASTER_ADMIN:
        return True
    if role == Role.PLACEMENT_OFFICER:
        return identity.officer_id is not None and placement.placement_officer_id == identity.officer_id
    if role == Role.PROJECT_LEAD and identity.school_id is not None:
        student_school = placement.student.school_id if placement.student else None
        officer_school = placement.placement_officer.school_id if placement.placement_officer else None
        return identity.school_id in (student_school, officer_school)
    return False


@csrf_exempt
@require_http_methods(["GET", "POST"])
@authenticate_token
@parse_body
def placement_list(request):
    identity = request.identity

    if request.method == 'GET':
        view = scoped_view(identity)
        if view is None:
            return _out_of_scope()
        placements = view['placements']
        status_filter = request.GET.get('status')
        if status_filter:
            placements = [p for p in placements if p['status'] == status_filter]
        return JsonResponse({
            "success": True,
            "count": len(placements),
            "placements": placements
        })

    data = dict(request.parsed_data)
    if identity.role == Role.PLACEMENT_OFFICER:
        if identity.officer_id is None:
            return _out_of_scope()
        # Officers always record placements under their own name
        data['placement_officer_id'] = identity.officer_id

    serializer = PlacementSerializer(data=data)
    if not serializer.is_valid():
        return validation_error(serializer.errors)

    candidate = Placement(**serializer.validated_data)
    if not _write_in_scope(identity, candidate):
        return _out_of_scope()

    try:
        placement = serializer.save()
    except Exception:
        logger.exception("Creating placement failed for user %s", identity.user_id)
        return json_error("Failed to add placement", 0xFF, status=500)

    logger.info("User %s added placement %s", identity.user_id, placement.id)
    return JsonResponse({
        "success": True,
        "message": "Placement added successfully",
        "placement": placement_to_dict(placement)
    }, status=201)


@csrf_exempt
@require_http_methods(["GET", "PATCH", "DELETE"])
@authenticate_token
@parse_body
def placement_detail(request, placement_id):
    identity = request.identity

    try:
        placement = Placement.objects.select_related(
            'student', 'company', 'placement_officer'
        ).get(id=placement_id)
    except Placement.DoesNotExist:
        return json_error("Placement not found", 0x80, status=404)

    view = scoped_view(identity)
    if view is None or placement.id not in {p['id'] for p in view['placements']}:
        return _out_of_scope()

    if request.method == 'GET':
        return JsonResponse({"success": True, "placement": placement_to_dict(placement)})

    if request.method == 'DELETE':
        if not _write_in_scope(identity, placement):
            return _out_of_scope()
        try:
            placement.delete()
        except Exception:
            logger.exception("Deleting placement %s failed for user %s", placement_id, identity.user_id)
            return json_error("Failed to delete placement", 0xFF, status=500)
        logger.info("User %s deleted placement %s", identity.user_id, placement_id)
        return JsonResponse({"success": True, "message": "Placement deleted"})

    data = dict(request.parsed_data)
    if identity.role == Role.PLACEMENT_OFFICER:
        data.pop('placement_officer_id', None)

    serializer = PlacementSerializer(placement, data=data, partial=True)
    if not serializer.is_valid():
        return validation_error(serializer.errors)

    for attr, value in serializer.validated_data.items():
        setattr(placement, attr, value)
    if not _write_in_scope(identity, placement):
        return _out_of_scope()

    try:
        placement = serializer.save()
    except Exception:
        logger.exception("Updating placement %s failed for user %s", placement_id, identity.user_id)
        return json_error("Failed to update placement", 0xFF, status=500)

    return JsonResponse({
        "success": True,
        "message": "Placement updated",
        "placement": placement_to_dict(placement)
    })


def _int_param(request, name, low=None, high=None):
    """Read an optional integer query parameter; raises ValueError when malformed."""
    raw = request.GET.get(name)
    if raw in (None, ''):
        return None
    value = int(raw)
    if (low is not None and value < low) or (high is not None and value > high):
        raise ValueError(f"{name} out of range")
    return value


def _performance_filters(request):
    return {
        'month': _int_param(request, 'month', 0, 11),
        'year': _int_param(request, 'year', 1900, 9999),
        'officer_id': _int_param(request, 'officer_id'),
    }


@csrf_exempt
@require_http_methods(["GET"])
@authenticate_token
@roles_required(Role.MASTER_ADMIN, Role.PROJECT_LEAD)
def performance(request):
    """
    Per-officer metrics and scores over the caller's scoped placements.

    Query: `month` (0-11, only with `year`), `year`, `officer_id`.
    """
    try:
        filters = _performance_filters(request)
    except ValueError:
        return json_error("month, year and officer_id must be integers; month is 0-11", 0x82)

    view = scoped_view(request.identity)
    if view is None:
        return _out_of_scope()

    metrics = compute_officer_metrics(view['placements'], view['placementOfficers'], **filters)
    scores = compute_performance_scores(metrics, ScoringWeights.from_settings())

    return JsonResponse({
        "success": True,
        "filters": filters,
        "overview": summarize_metrics(metrics, view['companies']),
        "metrics": metrics,
        "scores": scores,
        "topOfficers": top_officers(metrics),
    })


@csrf_exempt
@require_http_methods(["GET"])
@authenticate_token
@roles_required(Role.MASTER_ADMIN, Role.PROJECT_LEAD)
def monthly_performance(request):
    try:
        filters = _performance_filters(request)
    except ValueError:
        return json_error("month, year and officer_id must be integers; month is 0-11", 0x82)

    view = scoped_view(request.identity)
    if view is None:
        return _out_of_scope()

    year = filters['year'] or timezone.localdate().year

    return JsonResponse({
        "success": True,
        "year": year,
        "months": monthly_breakdown(
            view['placements'], year,
            month=filters['month'], officer_id=filters['officer_id']
        ),
    })
