from django.urls import path
from .views import dashboard, navigation

urlpatterns = [
    path('', dashboard, name='dashboard'),
    path('navigation/', navigation, name='navigation'),
]
