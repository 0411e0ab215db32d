from rest_framework import serializers

from schools.models import PlacementOfficer
from .models import Company, CompanyInteraction


class CompanySerializer(serializers.ModelSerializer):
    job_roles_offered = serializers.ListField(
        child=serializers.CharField(max_length=100),
        required=False
    )

    class Meta:
        model = Company
        fields = [
            'id', 'name', 'contact_person', 'contact_email', 'contact_phone',
            'collaboration_status', 'company_status', 'job_roles_offered'
        ]


class CompanyInteractionSerializer(serializers.ModelSerializer):
    placement_officer_id = serializers.PrimaryKeyRelatedField(
        source='placement_officer',
        queryset=PlacementOfficer.objects.all()
    )

    class Meta:
        model = CompanyInteraction
        fields = ['id', 'placement_officer_id', 'interaction_type', 'description', 'interaction_date']
        extra_kwargs = {
            'interaction_date': {'required': False},
        }

    def validate_description(self, value):
        if not value.strip():
            raise serializers.ValidationError("Description cannot be blank")
        return value
