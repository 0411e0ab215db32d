"""Which front-end routes each role may open."""
from django.conf import settings

from users.roles import Role, is_allowed

ADMIN_OR_LEAD = (Role.MASTER_ADMIN, Role.PROJECT_LEAD)

# path -> required roles; None means any signed-in user
ROUTE_ACCESS = {
    '/dashboard': None,
    '/students': None,
    '/companies': None,
    '/placements': None,
    '/schools': None,
    '/users': None,
    '/schools/add': ADMIN_OR_LEAD,
    '/officer-performance': ADMIN_OR_LEAD,
}

LOGIN_PATH = '/'


def _normalize(path):
    path = (path or '').split('?', 1)[0]
    if len(path) > 1:
        path = path.rstrip('/')
    return path


def check_route(identity, path):
    """Return `{allowed, redirect_to}` for opening `path` as `identity`."""
    landing = settings.DEFAULT_LANDING_PATH
    if identity is None or not identity.is_authenticated:
        return {'allowed': False, 'redirect_to': LOGIN_PATH}

    path = _normalize(path)
    if path not in ROUTE_ACCESS:
        return {'allowed': False, 'redirect_to': landing}

    if is_allowed(identity.role, ROUTE_ACCESS[path]):
        return {'allowed': True, 'redirect_to': None}
    return {'allowed': False, 'redirect_to': landing}


def visible_routes(identity):
    return [path for path in ROUTE_ACCESS if check_route(identity, path)['allowed']]
