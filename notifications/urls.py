from django.urls import path
from .views import list_changes

urlpatterns = [
    path('', list_changes, name='list-changes'),
]
