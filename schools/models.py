from django.db import models
from django.core.validators import MinValueValidator


class School(models.Model):
    name = models.CharField(max_length=150)
    location = models.CharField(max_length=150, blank=True)
    project_lead = models.ForeignKey(
        'users.User',
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='led_schools'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


class PlacementOfficer(models.Model):
    """Operational identity of an officer; `user` is the optional login record."""
    name = models.CharField(max_length=100)
    email = models.EmailField(max_length=255)
    phone = models.CharField(max_length=20, blank=True)
    school = models.ForeignKey(
        School,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='officers'
    )
    user = models.OneToOneField(
        'users.User',
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='officer_profile'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


class Student(models.Model):
    PLACEMENT_STATUS_CHOICES = [
        ('not_placed', 'Not Placed'),
        ('placed', 'Placed'),
    ]

    STUDENT_STATUS_CHOICES = [
        ('ongoing_course', 'Ongoing Course'),
        ('ongoing_placed', 'Ongoing Course & Placed'),
        ('finished_not_placed', 'Finished, Not Placed'),
        ('finished_placed', 'Finished & Placed'),
        ('not_seeking', 'Not Seeking Placement'),
    ]

    name = models.CharField(max_length=100)
    email = models.EmailField(max_length=255)
    phone = models.CharField(max_length=20, blank=True)
    course = models.CharField(max_length=100, blank=True)
    course_specialization = models.CharField(max_length=100, blank=True)
    school = models.ForeignKey(
        School,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='students'
    )
    placement_status = models.CharField(
        max_length=20,
        choices=PLACEMENT_STATUS_CHOICES,
        default='not_placed'
    )
    student_status = models.CharField(
        max_length=30,
        choices=STUDENT_STATUS_CHOICES,
        default='ongoing_course'
    )
    interviews_attended = models.PositiveIntegerField(default=0, validators=[MinValueValidator(0)])
    interview_results = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.name} ({self.school or 'no school'})"


def school_to_dict(school):
    return {
        'id': school.id,
        'name': school.name,
        'location': school.location,
        'project_lead_id': school.project_lead_id,
        'created_at': school.created_at.isoformat() if school.created_at else None,
    }


def officer_to_dict(officer):
    return {
        'id': officer.id,
        'name': officer.name,
        'email': officer.email,
        'phone': officer.phone,
        'school_id': officer.school_id,
        'school_name': officer.school.name if officer.school_id else None,
        'user_id': officer.user_id,
    }


def student_to_dict(student):
    return {
        'id': student.id,
        'name': student.name,
        'email': student.email,
        'phone': student.phone,
        'course': student.course,
        'course_specialization': student.course_specialization,
        'school_id': student.school_id,
        'school_name': student.school.name if student.school_id else None,
        'placement_status': student.placement_status,
        'student_status': student.student_status,
        'interviews_attended': student.interviews_attended,
        'interview_results': student.interview_results,
        'created_at': student.created_at.isoformat() if student.created_at else None,
    }
