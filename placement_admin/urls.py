from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('', include('users.urls')),
    path('', include('schools.urls')),
    path('companies/', include('companies.urls')),
    path('placements/', include('placements.urls')),
    path('dashboard/', include('dashboard.urls')),
    path('changes/', include('notifications.urls')),
]
