"""
Role-scoped view of the placement data.

`build_user_view` narrows a full `Snapshot` to what one identity may see
and computes the dashboard statistics for that subset. It is a pure
function: it reads its inputs, never mutates them, and gives the same
result for the same identity and snapshot.

Scoping rules (first match wins):

* master_admin -- everything. `users` lists project leads and officers.
* project_lead -- their school only. Placements are the union of those
  whose student is in the school and those handled by one of the school's
  officers. Companies are global.
* placement_officer -- students of their school, only placements they
  handled, no peer users.
* anything else, or a lead/officer with no school -- no view (`None`).
"""
from dataclasses import dataclass, field
from typing import Optional

from django.conf import settings

from placements.utils import newest_first, round_half_up
from users.roles import Role, SessionContext


@dataclass(frozen=True)
class Snapshot:
    """Rows of every table, as produced by the model `*_to_dict` helpers."""
    schools: list = field(default_factory=list)
    students: list = field(default_factory=list)
    companies: list = field(default_factory=list)
    placements: list = field(default_factory=list)
    officers: list = field(default_factory=list)
    users: list = field(default_factory=list)


def placement_rate(placed, total):
    if total == 0:
        return 0
    return round_half_up(placed / total * 100)


def compute_stats(students, companies, placements, recent_limit=None):
    if recent_limit is None:
        recent_limit = settings.RECENT_PLACEMENTS_LIMIT
    total = len(students)
    placed = sum(1 for s in students if s.get('placement_status') == 'placed')
    return {
        'totalStudents': total,
        'placedStudents': placed,
        'activeCompanies': sum(1 for c in companies if c.get('collaboration_status') == 'active'),
        'placementRate': placement_rate(placed, total),
        'recentPlacements': newest_first(placements)[:recent_limit],
    }


def _view(schools, students, companies, placements, users, officers):
    return {
        'schools': schools,
        'students': students,
        'companies': companies,
        'placements': placements,
        'users': users,
        'placementOfficers': officers,
        'stats': compute_stats(students, companies, placements),
    }


def build_user_view(identity: SessionContext, snapshot: Snapshot) -> Optional[dict]:
    if identity is None or not identity.is_authenticated:
        return None

    role = Role.parse(identity.role)
    companies = list(snapshot.companies)

    if role == Role.MASTER_ADMIN:
        staff = [u for u in snapshot.users
                 if u.get('role') in (Role.PROJECT_LEAD.value, Role.PLACEMENT_OFFICER.value)]
        return _view(
            list(snapshot.schools),
            list(snapshot.students),
            companies,
            list(snapshot.placements),
            staff,
            list(snapshot.officers),
        )

    school_id = identity.school_id
    if school_id is None:
        return None

    schools = [s for s in snapshot.schools if s['id'] == school_id]
    students = [s for s in snapshot.students if s.get('school_id') == school_id]

    if role == Role.PROJECT_LEAD:
        officers = [o for o in snapshot.officers if o.get('school_id') == school_id]
        student_ids = {s['id'] for s in students}
        officer_ids = {o['id'] for o in officers}
        placements = [
            p for p in snapshot.placements
            if p.get('student_id') in student_ids or p.get('placement_officer_id') in officer_ids
        ]
        users = [
            u for u in snapshot.users
            if u.get('school_id') == school_id
            and u.get('role') in (Role.PROJECT_LEAD.value, Role.PLACEMENT_OFFICER.value)
        ]
        return _view(schools, students, companies, placements, users, officers)

    if role == Role.PLACEMENT_OFFICER:
        officer_id = identity.officer_id
        placements = [
            p for p in snapshot.placements
            if officer_id is not None and p.get('placement_officer_id') == officer_id
        ]
        officers = [o for o in snapshot.officers if officer_id is not None and o['id'] == officer_id]
        return _view(schools, students, companies, placements, [], officers)

    return None


def can_manage_school(identity: SessionContext, school_id) -> bool:
    """Write-side scope: admins manage every school, others only their own."""
    if identity is None or not identity.is_authenticated:
        return False
    role = Role.parse(identity.role)
    if role == Role.MASTER_ADMIN:
        return True
    if role in (Role.PROJECT_LEAD, Role.PLACEMENT_OFFICER):
        return identity.school_id is not None and school_id == identity.school_id
    return False
