from django.core.exceptions import ValidationError

from .models import Session
from .roles import SessionContext


class TokenAuthMiddleware:
    """
    Attach `request._user` and `request.identity` for every request.

    Invalid or lapsed tokens leave the request anonymous; views that need a
    user still go through `authenticate_token` for the proper error body.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request._user = None
        request.identity = SessionContext.anonymous()

        auth_header = request.headers.get('Authorization')

        if auth_header and auth_header.startswith('Bearer '):
            token = auth_header.split(' ', 1)[1].strip()

            try:
                session = Session.objects.select_related('user').get(
                    token=token,
                    is_expired=False,
                    user__deleted_at__isnull=True
                )
            except (Session.DoesNotExist, ValidationError, ValueError):
                session = None

            if session is not None:
                if session.has_lapsed():
                    session.expire()
                else:
                    request._user = session.user
                    request.identity = SessionContext.from_user(session.user)

        return self.get_response(request)
