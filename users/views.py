import logging

from django.db import transaction
from django.http import JsonResponse
from django.utils.timezone import now
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST, require_http_methods
from datetime import timedelta
from django.conf import settings

from dashboard.snapshot import scoped_view
from schools.models import School, PlacementOfficer
from .models import User, Session, user_to_dict
from .decorators import authenticate_token, parse_body, roles_required
from .roles import Role, ASSIGNABLE_ROLES, SCHOOL_SCOPED_ROLES

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
@parse_body
def login(request):
    try:
        email = request.parsed_data.get('email')
        password = request.parsed_data.get('password')

        if not email or not password:
            return JsonResponse({
                "success": False,
                "message": "Email and password are required.",
                "errno": 0x10
            }, status=400)

        try:
            user = User.objects.get(email=email, deleted_at__isnull=True)
        except User.DoesNotExist:
            user = None

        if user is None or not user.check_password(password):
            logger.info("Failed login for %s", email)
            return JsonResponse({
                "success": False,
                "message": "Invalid credentials.",
                "errno": 0x11
            }, status=401)

        session = Session.create_session(user)
        user.last_login = now()
        user.save(update_fields=['last_login'])
        logger.info("User %s logged in", user.id)

        return JsonResponse({
            "success": True,
            "message": f"Welcome, {user.get_full_name()}!",
            "token": str(session.token),
            "expires_at": session.expires_at.isoformat(),
            "user": user_to_dict(user)
        }, status=200)

    except Exception:
        logger.exception("Login failed unexpectedly")
        return JsonResponse({
            "success": False,
            "message": "An unexpected error occurred.",
            "errno": 0xFF
        }, status=500)


@csrf_exempt
@require_POST
@authenticate_token
def logout(request):
    Session.objects.filter(token=request.session_token).update(is_expired=True)
    logger.info("User %s logged out", request._user.id)
    return JsonResponse({
        "success": True,
        "message": "You have been logged out."
    }, status=200)


@csrf_exempt
@require_http_methods(["GET"])
@authenticate_token
def me(request):
    user = request._user
    identity = request.identity
    return JsonResponse({
        "success": True,
        "user": {
            **user_to_dict(user),
            "role_label": identity.role.label,
            "officer_id": identity.officer_id,
            "last_login": user.last_login.isoformat() if user.last_login else None,
        }
    }, status=200)


@csrf_exempt
@require_POST
@authenticate_token
def refresh_token(request):
    session = Session.objects.get(token=request.session_token)
    session.expires_at = now() + timedelta(hours=settings.SESSION_DURATION_HOURS)
    session.save(update_fields=['expires_at'])
    return JsonResponse({
        "success": True,
        "message": "Token refreshed successfully.",
        "token": str(session.token),
        "expires_at": session.expires_at.isoformat()
    }, status=200)


@csrf_exempt
@require_http_methods(["GET", "POST"])
@authenticate_token
@roles_required(Role.MASTER_ADMIN, Role.PROJECT_LEAD)
@parse_body
def user_directory(request):
    if request.method == 'POST':
        return _create_user(request)

    view = scoped_view(request.identity)
    if view is None:
        return JsonResponse({
            "success": False,
            "message": "Insufficient permission to view users",
            "errno": 0x73
        }, status=403)

    users = view['users']
    role_filter = request.GET.get('role')
    if role_filter:
        users = [u for u in users if u['role'] == role_filter]

    return JsonResponse({
        "success": True,
        "count": len(users),
        "users": users
    })


def _create_user(request):
    data = request.parsed_data
    identity = request.identity

    required_fields = ['email', 'password', 'first_name', 'role']
    if not all(data.get(field) for field in required_fields):
        return JsonResponse({
            "success": False,
            "message": "email, password, first_name and role are required.",
            "errno": 0x30
        }, status=400)

    role = Role.parse(data['role'])
    if role not in ASSIGNABLE_ROLES:
        return JsonResponse({
            "success": False,
            "message": "Invalid user role.",
            "errno": 0x31
        }, status=400)

    school_id = data.get('school_id')
    if identity.role == Role.PROJECT_LEAD:
        # Leads may only add officers to their own school
        if role != Role.PLACEMENT_OFFICER:
            return JsonResponse({
                "success": False,
                "message": "Project leads can only add placement officers.",
                "errno": 0x73
            }, status=403)
        school_id = identity.school_id

    if role in SCHOOL_SCOPED_ROLES and not school_id:
        return JsonResponse({
            "success": False,
            "message": f"A school is required for the {role.label} role.",
            "errno": 0x30
        }, status=400)

    if User.objects.filter(email=data['email']).exists():
        return JsonResponse({
            "success": False,
            "message": "Email already exists.",
            "errno": 0x32
        }, status=400)

    school = None
    if school_id:
        try:
            school = School.objects.get(id=school_id)
        except (School.DoesNotExist, ValueError, TypeError):
            return JsonResponse({
                "success": False,
                "message": "School not found.",
                "errno": 0x80
            }, status=404)

    try:
        with transaction.atomic():
            user = User(
                email=data['email'],
                first_name=data['first_name'],
                last_name=data.get('last_name', ''),
                phone_number=data.get('phone'),
                role=role.value,
                school=school,
            )
            user.set_password(data['password'])
            user.save()

            if role == Role.PLACEMENT_OFFICER:
                PlacementOfficer.objects.create(
                    user=user,
                    name=user.get_full_name(),
                    email=user.email,
                    phone=user.phone_number or '',
                    school=school,
                )
    except Exception:
        logger.exception("Creating user %s failed", data.get('email'))
        return JsonResponse({
            "success": False,
            "message": "Failed to add user.",
            "errno": 0xFF
        }, status=500)

    logger.info("User %s created %s user %s", identity.user_id, role.value, user.id)
    return JsonResponse({
        "success": True,
        "message": "User added successfully.",
        "user": user_to_dict(user)
    }, status=201)


@csrf_exempt
@require_http_methods(["DELETE"])
@authenticate_token
@roles_required(Role.MASTER_ADMIN)
def delete_user(request, user_id):
    try:
        user = User.objects.get(id=user_id, deleted_at__isnull=True)
    except User.DoesNotExist:
        return JsonResponse({
            "success": False,
            "message": "User not found.",
            "errno": 0x80
        }, status=404)

    if user.id == request.identity.user_id:
        return JsonResponse({
            "success": False,
            "message": "You cannot delete your own account.",
            "errno": 0x73
        }, status=400)

    with transaction.atomic():
        user.deleted_at = now()
        user.save(update_fields=['deleted_at'])
        Session.objects.filter(user=user).update(is_expired=True)

    return JsonResponse({
        "success": True,
        "message": "User deleted."
    })
