import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from dashboard.scoping import can_manage_school
from dashboard.snapshot import scoped_view
from users.decorators import authenticate_token, parse_body, json_error, validation_error
from users.roles import Role, is_allowed
from .models import (
    School, Student, PlacementOfficer,
    school_to_dict, student_to_dict, officer_to_dict,
)
from .serializers import SchoolSerializer, StudentSerializer, PlacementOfficerSerializer

logger = logging.getLogger(__name__)

ADMIN_OR_LEAD = (Role.MASTER_ADMIN, Role.PROJECT_LEAD)


def _out_of_scope():
    return json_error("Insufficient permission to access this data", 0x73, status=403)


def _not_permitted():
    return json_error("You do not have permission to perform this action", 0x70, status=403)


def _in_view(view, key, record_id):
    return view is not None and record_id in {row['id'] for row in view[key]}


def _pin_school(identity, data):
    """
    Non-admins always write into their own school.

    Returns the adjusted payload, or None when the caller has no school.
    """
    data = dict(data)
    if identity.role == Role.MASTER_ADMIN:
        return data
    if identity.school_id is None:
        return None
    data['school_id'] = identity.school_id
    return data


# Schools

@csrf_exempt
@require_http_methods(["GET", "POST"])
@authenticate_token
@parse_body
def school_list(request):
    identity = request.identity

    if request.method == 'GET':
        view = scoped_view(identity)
        if view is None:
            return _out_of_scope()
        return JsonResponse({
            "success": True,
            "count": len(view['schools']),
            "schools": view['schools'],
            "stats": view['stats']
        })

    if not is_allowed(identity.role, ADMIN_OR_LEAD):
        return _not_permitted()

    data = dict(request.parsed_data)
    if identity.role == Role.PROJECT_LEAD and not data.get('project_lead_id'):
        data['project_lead_id'] = identity.user_id

    serializer = SchoolSerializer(data=data)
    if not serializer.is_valid():
        return validation_error(serializer.errors)

    school = serializer.save()
    logger.info("User %s added school %s", identity.user_id, school.id)
    return JsonResponse({
        "success": True,
        "message": "School added successfully",
        "school": school_to_dict(school)
    }, status=201)


@csrf_exempt
@require_http_methods(["GET", "PATCH", "DELETE"])
@authenticate_token
@parse_body
def school_detail(request, school_id):
    try:
        school = School.objects.get(id=school_id)
    except School.DoesNotExist:
        return json_error("School not found", 0x80, status=404)

    identity = request.identity
    if request.method == 'GET':
        if not _in_view(scoped_view(identity), 'schools', school.id):
            return _out_of_scope()
        return JsonResponse({"success": True, "school": school_to_dict(school)})

    if identity.role != Role.MASTER_ADMIN:
        return _not_permitted()

    if request.method == 'DELETE':
        school.delete()
        logger.info("User %s deleted school %s", identity.user_id, school_id)
        return JsonResponse({"success": True, "message": "School deleted"})

    serializer = SchoolSerializer(school, data=request.parsed_data, partial=True)
    if not serializer.is_valid():
        return validation_error(serializer.errors)
    school = serializer.save()
    return JsonResponse({
        "success": True,
        "message": "School updated",
        "school": school_to_dict(school)
    })


# Students

def _search_students(students, term):
    term = term.lower()
    return [
        s for s in students
        if term in (s['name'] or '').lower()
        or term in (s['email'] or '').lower()
        or term in (s['course'] or '').lower()
    ]


@csrf_exempt
@require_http_methods(["GET", "POST"])
@authenticate_token
@parse_body
def student_list(request):
    identity = request.identity

    if request.method == 'GET':
        view = scoped_view(identity)
        if view is None:
            return _out_of_scope()

        students = view['students']
        status_filter = request.GET.get('placement_status')
        if status_filter:
            valid = {choice for choice, _ in Student.PLACEMENT_STATUS_CHOICES}
            if status_filter not in valid:
                return json_error("Unknown placement status", 0x82)
            students = [s for s in students if s['placement_status'] == status_filter]

        search = request.GET.get('search')
        if search:
            students = _search_students(students, search)

        return JsonResponse({
            "success": True,
            "count": len(students),
            "students": students
        })

    data = _pin_school(identity, request.parsed_data)
    if data is None:
        return _out_of_scope()

    serializer = StudentSerializer(data=data)
    if not serializer.is_valid():
        return validation_error(serializer.errors)

    student = serializer.save()
    logger.info("User %s added student %s", identity.user_id, student.id)
    return JsonResponse({
        "success": True,
        "message": "Student added successfully",
        "student": student_to_dict(student)
    }, status=201)


@csrf_exempt
@require_http_methods(["GET", "PATCH", "DELETE"])
@authenticate_token
@parse_body
def student_detail(request, student_id):
    try:
        student = Student.objects.select_related('school').get(id=student_id)
    except Student.DoesNotExist:
        return json_error("Student not found", 0x80, status=404)

    identity = request.identity
    if not _in_view(scoped_view(identity), 'students', student.id):
        return _out_of_scope()

    if request.method == 'GET':
        return JsonResponse({"success": True, "student": student_to_dict(student)})

    if not can_manage_school(identity, student.school_id):
        return _out_of_scope()

    if request.method == 'DELETE':
        student.delete()
        logger.info("User %s deleted student %s", identity.user_id, student_id)
        return JsonResponse({"success": True, "message": "Student deleted"})

    data = dict(request.parsed_data)
    if identity.role != Role.MASTER_ADMIN:
        data.pop('school_id', None)

    serializer = StudentSerializer(student, data=data, partial=True)
    if not serializer.is_valid():
        return validation_error(serializer.errors)
    student = serializer.save()
    return JsonResponse({
        "success": True,
        "message": "Student updated",
        "student": student_to_dict(student)
    })


# Placement officers

@csrf_exempt
@require_http_methods(["GET", "POST"])
@authenticate_token
@parse_body
def officer_list(request):
    identity = request.identity

    if request.method == 'GET':
        view = scoped_view(identity)
        if view is None:
            return _out_of_scope()
        return JsonResponse({
            "success": True,
            "count": len(view['placementOfficers']),
            "officers": view['placementOfficers']
        })

    if not is_allowed(identity.role, ADMIN_OR_LEAD):
        return _not_permitted()

    data = _pin_school(identity, request.parsed_data)
    if data is None:
        return _out_of_scope()

    serializer = PlacementOfficerSerializer(data=data)
    if not serializer.is_valid():
        return validation_error(serializer.errors)

    officer = serializer.save()
    logger.info("User %s added placement officer %s", identity.user_id, officer.id)
    return JsonResponse({
        "success": True,
        "message": "Placement officer added successfully",
        "officer": officer_to_dict(officer)
    }, status=201)


@csrf_exempt
@require_http_methods(["GET", "PATCH", "DELETE"])
@authenticate_token
@parse_body
def officer_detail(request, officer_id):
    try:
        officer = PlacementOfficer.objects.select_related('school').get(id=officer_id)
    except PlacementOfficer.DoesNotExist:
        return json_error("Placement officer not found", 0x80, status=404)

    identity = request.identity
    if request.method == 'GET':
        if not _in_view(scoped_view(identity), 'placementOfficers', officer.id):
            return _out_of_scope()
        return JsonResponse({"success": True, "officer": officer_to_dict(officer)})

    if not is_allowed(identity.role, ADMIN_OR_LEAD):
        return _not_permitted()
    if not can_manage_school(identity, officer.school_id):
        return _out_of_scope()

    if request.method == 'DELETE':
        officer.delete()
        logger.info("User %s deleted placement officer %s", identity.user_id, officer_id)
        return JsonResponse({"success": True, "message": "Placement officer deleted"})

    data = dict(request.parsed_data)
    if identity.role != Role.MASTER_ADMIN:
        data.pop('school_id', None)

    serializer = PlacementOfficerSerializer(officer, data=data, partial=True)
    if not serializer.is_valid():
        return validation_error(serializer.errors)
    officer = serializer.save()
    return JsonResponse({
        "success": True,
        "message": "Placement officer updated",
        "officer": officer_to_dict(officer)
    })
