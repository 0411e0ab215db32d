from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from users.decorators import authenticate_token, json_error
from .navigation import check_route, visible_routes
from .snapshot import scoped_view


@csrf_exempt
@require_http_methods(["GET"])
@authenticate_token
def dashboard(request):
    view = scoped_view(request.identity)
    if view is None:
        return json_error("Insufficient permission to view the dashboard", 0x73, status=403)
    return JsonResponse({
        "success": True,
        "role": request.identity.role.value,
        **view
    })


@csrf_exempt
@require_http_methods(["GET"])
@authenticate_token
def navigation(request):
    path = request.GET.get('path')
    response = {
        "success": True,
        "routes": visible_routes(request.identity),
    }
    if path:
        response["path"] = path
        response.update(check_route(request.identity, path))
    return JsonResponse(response)
