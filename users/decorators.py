import json
import logging
from functools import wraps

from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import JsonResponse

from .models import Session
from .roles import SessionContext, is_allowed

logger = logging.getLogger(__name__)


def json_error(message, errno, status=400, **extra):
    return JsonResponse({
        "success": False,
        "message": message,
        "errno": errno,
        **extra
    }, status=status)


def validation_error(errors):
    return json_error("Validation failed", 0x81, status=400, details=errors)


def _unauthorized(message, errno):
    return json_error(message, errno, status=401)


def authenticate_token(view_func):
    """Reject the request unless it carries a live bearer token."""
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        auth_header = request.headers.get('Authorization')

        if not auth_header or not auth_header.startswith('Bearer '):
            request._user = None
            request.identity = SessionContext.anonymous()
            return _unauthorized("Authentication token is missing or invalid.", 0x20)

        token = auth_header.split(' ', 1)[1].strip()

        try:
            session = Session.objects.select_related('user').get(
                token=token,
                is_expired=False,
                user__deleted_at__isnull=True
            )
        except (Session.DoesNotExist, ValidationError, ValueError):
            request._user = None
            request.identity = SessionContext.anonymous()
            return _unauthorized("Invalid or expired token.", 0x21)

        if session.has_lapsed():
            session.expire()
            request._user = None
            request.identity = SessionContext.anonymous()
            return _unauthorized("Token has expired.", 0x21)

        request._user = session.user
        request.session_token = session.token
        request.identity = SessionContext.from_user(session.user)
        return view_func(request, *args, **kwargs)

    return _wrapped_view


def roles_required(*roles):
    """
    Gate a view to the given roles.

    Denials carry `redirect_to` so a client can fall back to the landing page
    instead of an error screen.
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            identity = getattr(request, 'identity', None) or SessionContext.anonymous()
            if not is_allowed(identity.role, roles):
                logger.warning(
                    "Denied %s %s for user %s (role %s)",
                    request.method, request.path, identity.user_id,
                    identity.role.value if identity.role else None
                )
                return JsonResponse({
                    "success": False,
                    "message": "You do not have permission to access this resource",
                    "errno": 0x70,
                    "redirect_to": settings.DEFAULT_LANDING_PATH
                }, status=403)
            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator


def parse_body(view_func):
    """Expose a JSON, form-data or urlencoded body as `request.parsed_data`."""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        request.parsed_data = {}
        content_type = (request.content_type or '').lower()

        if not request.body:
            return view_func(request, *args, **kwargs)

        if content_type == 'application/json':
            try:
                request.parsed_data = json.loads(request.body)
            except json.JSONDecodeError:
                return JsonResponse({
                    "success": False,
                    "message": "Invalid JSON data",
                    "errno": 0x61
                }, status=400)
            if not isinstance(request.parsed_data, dict):
                return JsonResponse({
                    "success": False,
                    "message": "JSON body must be an object",
                    "errno": 0x61
                }, status=400)

        elif content_type.startswith('multipart/form-data') or \
                content_type == 'application/x-www-form-urlencoded':
            request.parsed_data = request.POST.dict()

        else:
            return JsonResponse({
                "success": False,
                "message": "Unsupported Content-Type. Use JSON, form-data, or x-www-form-urlencoded",
                "errno": 0x62
            }, status=415)

        return view_func(request, *args, **kwargs)
    return wrapper
