from rest_framework import serializers

from companies.models import Company
from schools.models import Student, PlacementOfficer
from .models import Placement


class PlacementSerializer(serializers.ModelSerializer):
    student_id = serializers.PrimaryKeyRelatedField(source='student', queryset=Student.objects.all())
    company_id = serializers.PrimaryKeyRelatedField(source='company', queryset=Company.objects.all())
    placement_officer_id = serializers.PrimaryKeyRelatedField(
        source='placement_officer',
        queryset=PlacementOfficer.objects.all()
    )

    class Meta:
        model = Placement
        fields = [
            'id', 'student_id', 'company_id', 'placement_officer_id',
            'started_at', 'placement_date', 'status'
        ]

    def validate(self, data):
        started_at = data.get('started_at', getattr(self.instance, 'started_at', None))
        placement_date = data.get('placement_date', getattr(self.instance, 'placement_date', None))
        if started_at and placement_date and started_at > placement_date:
            raise serializers.ValidationError({"started_at": "Start date cannot be after the placement date"})
        return data
