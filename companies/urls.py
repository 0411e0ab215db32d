from django.urls import path
from .views import company_list, company_detail, company_interactions

urlpatterns = [
    path('', company_list, name='company-list'),
    path('<int:company_id>/', company_detail, name='company-detail'),
    path('<int:company_id>/interactions/', company_interactions, name='company-interactions'),
]
