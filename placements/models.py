from django.db import models
from django.core.exceptions import ValidationError
from django.utils import timezone


class Placement(models.Model):
    STATUS_CHOICES = [
        ('in_progress', 'In Progress'),
        ('completed', 'Completed'),
    ]

    student = models.ForeignKey(
        'schools.Student',
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='placements'
    )
    company = models.ForeignKey(
        'companies.Company',
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='placements'
    )
    placement_officer = models.ForeignKey(
        'schools.PlacementOfficer',
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='placements'
    )
    # When the officer started working this placement; drives average placement time
    started_at = models.DateField(null=True, blank=True)
    placement_date = models.DateField(default=timezone.localdate)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='in_progress')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-placement_date']
        indexes = [
            models.Index(fields=['placement_officer', 'placement_date']),
        ]

    def clean(self):
        if self.started_at and self.placement_date and self.started_at > self.placement_date:
            raise ValidationError("Start date cannot be after the placement date")
        super().clean()

    def __str__(self):
        student = self.student.name if self.student else 'Unknown student'
        company = self.company.name if self.company else 'Unknown company'
        return f"{student} at {company}"


def placement_to_dict(placement):
    """Names are derived from the linked rows for display only."""
    return {
        'id': placement.id,
        'student_id': placement.student_id,
        'student_name': placement.student.name if placement.student else None,
        'company_id': placement.company_id,
        'company_name': placement.company.name if placement.company else None,
        'placement_officer_id': placement.placement_officer_id,
        'placement_officer_name': placement.placement_officer.name if placement.placement_officer else None,
        'started_at': placement.started_at.isoformat() if placement.started_at else None,
        'placement_date': placement.placement_date.isoformat() if placement.placement_date else None,
        'status': placement.status,
    }
