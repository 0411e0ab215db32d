import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from users.decorators import authenticate_token, parse_body, json_error, validation_error
from users.roles import Role, is_allowed
from .models import Company, CompanyInteraction, company_to_dict, interaction_to_dict
from .serializers import CompanySerializer, CompanyInteractionSerializer

logger = logging.getLogger(__name__)


def _get_company(company_id):
    try:
        return Company.objects.get(id=company_id)
    except Company.DoesNotExist:
        return None


@csrf_exempt
@require_http_methods(["GET", "POST"])
@authenticate_token
@parse_body
def company_list(request):
    """Companies are shared across schools, so every role sees all of them."""
    if request.method == 'GET':
        queryset = Company.objects.all()
        status_filter = request.GET.get('collaboration_status')
        if status_filter:
            valid = {choice for choice, _ in Company.COLLABORATION_STATUS_CHOICES}
            if status_filter not in valid:
                return json_error("Unknown collaboration status", 0x82)
            queryset = queryset.filter(collaboration_status=status_filter)

        search = request.GET.get('search')
        if search:
            queryset = queryset.filter(name__icontains=search)

        companies = [company_to_dict(c) for c in queryset]
        return JsonResponse({
            "success": True,
            "count": len(companies),
            "companies": companies
        })

    serializer = CompanySerializer(data=request.parsed_data)
    if not serializer.is_valid():
        return validation_error(serializer.errors)

    company = serializer.save()
    logger.info("User %s added company %s", request.identity.user_id, company.id)
    return JsonResponse({
        "success": True,
        "message": "Company added successfully",
        "company": company_to_dict(company)
    }, status=201)


@csrf_exempt
@require_http_methods(["GET", "PATCH", "DELETE"])
@authenticate_token
@parse_body
def company_detail(request, company_id):
    company = _get_company(company_id)
    if company is None:
        return json_error("Company not found", 0x80, status=404)

    if request.method == 'GET':
        return JsonResponse({"success": True, "company": company_to_dict(company)})

    if request.method == 'DELETE':
        if not is_allowed(request.identity.role, (Role.MASTER_ADMIN, Role.PROJECT_LEAD)):
            return json_error("Only admins and project leads can delete companies", 0x70, status=403)
        # Interactions go with the company; their delete events are recorded too
        company.delete()
        logger.info("User %s deleted company %s", request.identity.user_id, company_id)
        return JsonResponse({"success": True, "message": "Company deleted"})

    serializer = CompanySerializer(company, data=request.parsed_data, partial=True)
    if not serializer.is_valid():
        return validation_error(serializer.errors)
    company = serializer.save()
    return JsonResponse({
        "success": True,
        "message": "Company updated",
        "company": company_to_dict(company)
    })


@csrf_exempt
@require_http_methods(["GET", "POST"])
@authenticate_token
@parse_body
def company_interactions(request, company_id):
    """Interaction timeline of one company, newest first."""
    company = _get_company(company_id)
    if company is None:
        return json_error("Company not found", 0x80, status=404)

    if request.method == 'GET':
        interactions = [
            interaction_to_dict(i)
            for i in CompanyInteraction.objects.filter(company=company)
            .select_related('placement_officer')
            .order_by('-interaction_date', '-id')
        ]
        return JsonResponse({
            "success": True,
            "company": {"id": company.id, "name": company.name},
            "interactions": interactions
        })

    identity = request.identity
    data = dict(request.parsed_data)
    if identity.role == Role.PLACEMENT_OFFICER:
        if identity.officer_id is None:
            return json_error("No officer profile is linked to this account", 0x73, status=403)
        data['placement_officer_id'] = identity.officer_id

    serializer = CompanyInteractionSerializer(data=data)
    if not serializer.is_valid():
        return validation_error(serializer.errors)

    interaction = serializer.save(company=company)
    logger.info(
        "Officer %s logged a %s with company %s",
        interaction.placement_officer_id, interaction.interaction_type, company.id
    )
    return JsonResponse({
        "success": True,
        "message": "Interaction recorded",
        "interaction": interaction_to_dict(interaction)
    }, status=201)
