from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from companies.models import Company, CompanyInteraction, company_to_dict, interaction_to_dict
from placements.models import Placement, placement_to_dict
from schools.models import (
    School, Student, PlacementOfficer,
    school_to_dict, student_to_dict, officer_to_dict,
)
from .utils import record_change

# model -> (table name, serializer)
TRACKED_MODELS = {
    Student: ('students', student_to_dict),
    Company: ('companies', company_to_dict),
    School: ('schools', school_to_dict),
    Placement: ('placements', placement_to_dict),
    PlacementOfficer: ('placement_officers', officer_to_dict),
    CompanyInteraction: ('company_interactions', interaction_to_dict),
}


@receiver(post_save)
def record_save(sender, instance, created, raw=False, **kwargs):
    tracked = TRACKED_MODELS.get(sender)
    if tracked is None or raw:
        return
    table, to_dict = tracked
    record_change(table, 'INSERT' if created else 'UPDATE', instance.pk, to_dict(instance))


@receiver(post_delete)
def record_delete(sender, instance, **kwargs):
    tracked = TRACKED_MODELS.get(sender)
    if tracked is None:
        return
    table = tracked[0]
    # Related rows may already be gone during a cascade
    record_change(table, 'DELETE', instance.pk, {'id': instance.pk})
