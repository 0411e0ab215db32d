from django.urls import path
from .views import placement_list, placement_detail, performance, monthly_performance

urlpatterns = [
    path('', placement_list, name='placement-list'),
    path('<int:placement_id>/', placement_detail, name='placement-detail'),
    path('performance/', performance, name='officer-performance'),
    path('performance/monthly/', monthly_performance, name='monthly-performance'),
]
