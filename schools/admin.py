from django.contrib import admin
from .models import School, PlacementOfficer, Student


@admin.register(School)
class SchoolAdmin(admin.ModelAdmin):
    list_display = ('name', 'location', 'project_lead', 'created_at')
    search_fields = ('name', 'location')
    raw_id_fields = ('project_lead',)


@admin.register(PlacementOfficer)
class PlacementOfficerAdmin(admin.ModelAdmin):
    list_display = ('name', 'email', 'school', 'has_login')
    list_filter = ('school',)
    search_fields = ('name', 'email')
    raw_id_fields = ('school', 'user')

    @admin.display(boolean=True, description='Login')
    def has_login(self, obj):
        return obj.user_id is not None


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ('name', 'email', 'school', 'course', 'placement_status', 'student_status')
    list_filter = ('placement_status', 'student_status', 'school')
    search_fields = ('name', 'email', 'course')
    raw_id_fields = ('school',)
