from rest_framework import serializers

from users.models import User
from .models import School, Student, PlacementOfficer


class SchoolSerializer(serializers.ModelSerializer):
    project_lead_id = serializers.PrimaryKeyRelatedField(
        source='project_lead',
        queryset=User.objects.filter(deleted_at__isnull=True),
        allow_null=True,
        required=False
    )

    class Meta:
        model = School
        fields = ['id', 'name', 'location', 'project_lead_id']

    def validate_project_lead_id(self, value):
        if value is not None and value.role != 'project_lead':
            raise serializers.ValidationError("Assigned user is not a project lead")
        return value


class StudentSerializer(serializers.ModelSerializer):
    school_id = serializers.PrimaryKeyRelatedField(
        source='school',
        queryset=School.objects.all(),
        allow_null=True,
        required=False
    )

    class Meta:
        model = Student
        fields = [
            'id', 'name', 'email', 'phone', 'course', 'course_specialization',
            'school_id', 'placement_status', 'student_status',
            'interviews_attended', 'interview_results'
        ]


class PlacementOfficerSerializer(serializers.ModelSerializer):
    school_id = serializers.PrimaryKeyRelatedField(
        source='school',
        queryset=School.objects.all(),
        allow_null=True,
        required=False
    )

    class Meta:
        model = PlacementOfficer
        fields = ['id', 'name', 'email', 'phone', 'school_id']
