from django.db import models
from django.utils import timezone


class Company(models.Model):
    COLLABORATION_STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]

    COMPANY_STATUS_CHOICES = [
        ('prospect', 'Prospect'),
        ('partner', 'Partner'),
        ('former_partner', 'Former Partner'),
        ('inactive', 'Inactive'),
    ]

    name = models.CharField(max_length=150)
    contact_person = models.CharField(max_length=100, blank=True)
    contact_email = models.EmailField(max_length=255, blank=True)
    contact_phone = models.CharField(max_length=20, blank=True)
    collaboration_status = models.CharField(
        max_length=20,
        choices=COLLABORATION_STATUS_CHOICES,
        default='active'
    )
    company_status = models.CharField(
        max_length=20,
        choices=COMPANY_STATUS_CHOICES,
        default='prospect'
    )
    job_roles_offered = models.JSONField(default=list, blank=True)  # ["Software Engineer", ...]
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "Companies"
        ordering = ['name']

    def __str__(self):
        return self.name


class CompanyInteraction(models.Model):
    INTERACTION_TYPES = [
        ('meeting', 'Meeting'),
        ('call', 'Call'),
        ('email', 'Email'),
        ('site_visit', 'Site Visit'),
        ('job_fair', 'Job Fair'),
        ('other', 'Other'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='interactions')
    placement_officer = models.ForeignKey(
        'schools.PlacementOfficer',
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='interactions'
    )
    interaction_type = models.CharField(max_length=20, choices=INTERACTION_TYPES)
    description = models.TextField()
    interaction_date = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-interaction_date']
        indexes = [
            models.Index(fields=['company', 'interaction_date']),
        ]

    def __str__(self):
        return f"{self.get_interaction_type_display()} with {self.company.name}"


def company_to_dict(company):
    return {
        'id': company.id,
        'name': company.name,
        'contact_person': company.contact_person,
        'contact_email': company.contact_email,
        'contact_phone': company.contact_phone,
        'collaboration_status': company.collaboration_status,
        'company_status': company.company_status,
        'job_roles_offered': list(company.job_roles_offered or []),
        'created_at': company.created_at.isoformat() if company.created_at else None,
    }


def interaction_to_dict(interaction):
    officer = interaction.placement_officer
    return {
        'id': interaction.id,
        'company_id': interaction.company_id,
        'placement_officer_id': interaction.placement_officer_id,
        'placement_officer_name': officer.name if officer else 'Unknown Officer',
        'interaction_type': interaction.interaction_type,
        'interaction_label': interaction.get_interaction_type_display(),
        'description': interaction.description,
        'interaction_date': interaction.interaction_date.isoformat(),
    }
