from companies.models import Company, company_to_dict
from placements.models import Placement, placement_to_dict
from schools.models import School, Student, PlacementOfficer, school_to_dict, student_to_dict, officer_to_dict
from users.models import User, user_to_dict

from .scoping import Snapshot, build_user_view


def load_snapshot() -> Snapshot:
    """Read every table the dashboard scopes over into plain dicts."""
    return Snapshot(
        schools=[school_to_dict(s) for s in School.objects.all()],
        students=[student_to_dict(s) for s in Student.objects.select_related('school')],
        companies=[company_to_dict(c) for c in Company.objects.all()],
        placements=[
            placement_to_dict(p)
            for p in Placement.objects.select_related('student', 'company', 'placement_officer')
        ],
        officers=[officer_to_dict(o) for o in PlacementOfficer.objects.select_related('school')],
        users=[user_to_dict(u) for u in User.objects.filter(deleted_at__isnull=True)],
    )


def scoped_view(identity):
    return build_user_view(identity, load_snapshot())
