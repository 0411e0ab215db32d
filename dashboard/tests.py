import copy

from django.test import TestCase, SimpleTestCase, Client, override_settings
from django.urls import reverse
from rest_framework import status

from notifications.feed import ChangeFeed
from schools.models import School, Student
from users.models import User, Session
from users.roles import Role, SessionContext
from .live import LiveScopedView
from .navigation import check_route, visible_routes
from .scoping import Snapshot, build_user_view, can_manage_school, compute_stats, placement_rate


def sample_snapshot():
    return Snapshot(
        schools=[{'id': 1, 'name': 'School A'}, {'id': 2, 'name': 'School B'}],
        students=[
            {'id': 11, 'name': 'Alice', 'school_id': 1, 'placement_status': 'placed'},
            {'id': 12, 'name': 'Amir', 'school_id': 1, 'placement_status': 'not_placed'},
            {'id': 13, 'name': 'Amy', 'school_id': 1, 'placement_status': 'not_placed'},
            {'id': 21, 'name': 'Bea', 'school_id': 2, 'placement_status': 'placed'},
        ],
        companies=[
            {'id': 100, 'name': 'Acme', 'collaboration_status': 'active'},
            {'id': 101, 'name': 'Globex', 'collaboration_status': 'inactive'},
        ],
        placements=[
            # A student, B officer
            {'id': 1, 'student_id': 11, 'placement_officer_id': 20, 'company_id': 100,
             'placement_date': '2023-06-01', 'status': 'completed'},
            # B student, A officer
            {'id': 2, 'student_id': 21, 'placement_officer_id': 10, 'company_id': 100,
             'placement_date': '2023-07-01', 'status': 'completed'},
            # B student, B officer
            {'id': 3, 'student_id': 21, 'placement_officer_id': 20, 'company_id': 101,
             'placement_date': '2023-05-01', 'status': 'in_progress'},
        ],
        officers=[
            {'id': 10, 'name': 'Olive', 'school_id': 1},
            {'id': 20, 'name': 'Oscar', 'school_id': 2},
        ],
        users=[
            {'id': 1, 'role': 'master_admin', 'school_id': None},
            {'id': 2, 'role': 'project_lead', 'school_id': 1},
            {'id': 3, 'role': 'placement_officer', 'school_id': 1},
            {'id': 4, 'role': 'project_lead', 'school_id': 2},
        ],
    )


ADMIN = SessionContext(user_id=1, role=Role.MASTER_ADMIN)
LEAD_A = SessionContext(user_id=2, role=Role.PROJECT_LEAD, school_id=1)
OFFICER_A = SessionContext(user_id=3, role=Role.PLACEMENT_OFFICER, school_id=1, officer_id=10)


class ScopedViewTests(SimpleTestCase):
    def setUp(self):
        self.snapshot = sample_snapshot()

    def test_admin_sees_everything(self):
        view = build_user_view(ADMIN, self.snapshot)
        self.assertEqual(len(view['placements']), 3)
        self.assertEqual(len(view['students']), 4)
        self.assertEqual({u['id'] for u in view['users']}, {2, 3, 4})

    def test_lead_sees_union_of_cross_school_placements(self):
        view = build_user_view(LEAD_A, self.snapshot)
        self.assertEqual({p['id'] for p in view['placements']}, {1, 2})
        self.assertEqual([s['id'] for s in view['schools']], [1])
        self.assertEqual([o['id'] for o in view['placementOfficers']], [10])
        self.assertEqual({u['id'] for u in view['users']}, {2, 3})
        self.assertEqual(len(view['companies']), 2)

    def test_officer_sees_only_own_placements(self):
        view = build_user_view(OFFICER_A, self.snapshot)
        self.assertEqual([p['id'] for p in view['placements']], [2])
        self.assertEqual(len(view['students']), 3)
        self.assertEqual(view['users'], [])
        self.assertEqual([o['id'] for o in view['placementOfficers']], [10])

    def test_no_view_without_role_or_school(self):
        self.assertIsNone(build_user_view(SessionContext.anonymous(), self.snapshot))
        self.assertIsNone(build_user_view(SessionContext(user_id=9, role=Role.UNKNOWN, school_id=1), self.snapshot))
        self.assertIsNone(build_user_view(SessionContext(user_id=9, role=Role.PROJECT_LEAD), self.snapshot))

    def test_stats(self):
        stats = build_user_view(LEAD_A, self.snapshot)['stats']
        self.assertEqual(stats['totalStudents'], 3)
        self.assertEqual(stats['placedStudents'], 1)
        self.assertEqual(stats['placementRate'], 33)
        self.assertEqual(stats['activeCompanies'], 1)
        self.assertEqual([p['id'] for p in stats['recentPlacements']], [2, 1])

    def test_recent_placements_keep_five_newest(self):
        snapshot = copy.deepcopy(self.snapshot)
        # Officer 10 is in School A, so all of these are in the lead's view
        for day in range(1, 9):
            snapshot.placements.append({
                'id': 100 + day, 'student_id': 12, 'placement_officer_id': 10, 'company_id': 100,
                'placement_date': f'2024-03-0{day}', 'status': 'completed',
            })
        view = build_user_view(LEAD_A, snapshot)
        self.assertEqual(len(view['placements']), 10)
        self.assertEqual(
            [p['id'] for p in view['stats']['recentPlacements']],
            [108, 107, 106, 105, 104]
        )

    @override_settings(RECENT_PLACEMENTS_LIMIT=2)
    def test_recent_placements_limit_is_configurable(self):
        stats = compute_stats([], [], build_user_view(ADMIN, self.snapshot)['placements'])
        self.assertEqual([p['id'] for p in stats['recentPlacements']], [2, 1])

    def test_placement_rate_without_students(self):
        self.assertEqual(placement_rate(0, 0), 0)
        empty = Snapshot(schools=[{'id': 1}])
        self.assertEqual(build_user_view(LEAD_A, empty)['stats']['placementRate'], 0)

    def test_idempotent_and_pure(self):
        before = copy.deepcopy(self.snapshot)
        first = build_user_view(LEAD_A, self.snapshot)
        second = build_user_view(LEAD_A, self.snapshot)
        self.assertEqual(first, second)
        self.assertEqual(self.snapshot, before)

    def test_can_manage_school(self):
        self.assertTrue(can_manage_school(ADMIN, 2))
        self.assertTrue(can_manage_school(LEAD_A, 1))
        self.assertFalse(can_manage_school(LEAD_A, 2))
        self.assertFalse(can_manage_school(SessionContext.anonymous(), 1))


class NavigationTests(SimpleTestCase):
    def test_unauthenticated_goes_to_login(self):
        self.assertEqual(
            check_route(SessionContext.anonymous(), '/dashboard'),
            {'allowed': False, 'redirect_to': '/'}
        )

    def test_officer_cannot_open_performance(self):
        self.assertEqual(
            check_route(OFFICER_A, '/officer-performance'),
            {'allowed': False, 'redirect_to': '/dashboard'}
        )
        self.assertTrue(check_route(OFFICER_A, '/students/')['allowed'])

    def test_lead_routes(self):
        self.assertTrue(check_route(LEAD_A, '/schools/add')['allowed'])
        self.assertIn('/officer-performance', visible_routes(LEAD_A))

    def test_unknown_path(self):
        self.assertFalse(check_route(ADMIN, '/billing')['allowed'])


class LiveScopedViewTests(SimpleTestCase):
    def test_recomputes_on_change_and_stops_after_close(self):
        change_feed = ChangeFeed()
        snapshot = sample_snapshot()
        updates = []

        live = LiveScopedView(
            LEAD_A,
            loader=lambda identity: build_user_view(identity, snapshot),
            change_feed=change_feed,
            on_update=updates.append,
        )
        self.assertEqual(len(live.view['placements']), 2)

        snapshot.placements.append({
            'id': 4, 'student_id': 12, 'placement_officer_id': 10, 'company_id': 100,
            'placement_date': '2023-08-01', 'status': 'in_progress',
        })
        change_feed.publish({'table': 'placements', 'event': 'INSERT', 'record_id': 4})
        self.assertEqual(len(live.view['placements']), 3)
        self.assertEqual(live.version, 1)
        self.assertEqual(len(updates), 1)

        live.close()
        self.assertTrue(live.closed)
        self.assertEqual(change_feed.subscriber_count(), 0)
        change_feed.publish({'table': 'students', 'event': 'UPDATE', 'record_id': 11})
        self.assertEqual(live.version, 1)

    def test_context_manager_releases_subscription(self):
        change_feed = ChangeFeed()
        snapshot = sample_snapshot()
        with LiveScopedView(
            OFFICER_A,
            loader=lambda identity: build_user_view(identity, snapshot),
            change_feed=change_feed,
        ) as live:
            self.assertEqual(change_feed.subscriber_count(), 1)
            change_feed.publish({'table': 'companies', 'event': 'UPDATE', 'record_id': 100})
            self.assertEqual(live.version, 1)
        self.assertTrue(live.closed)
        self.assertEqual(change_feed.subscriber_count(), 0)


class DashboardEndpointTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.school = School.objects.create(name='School A')
        Student.objects.create(name='Alice', email='alice@example.com', school=self.school,
                               placement_status='placed')
        self.lead = User.objects.create(
            email='lead@example.com', first_name='Lee', role='project_lead', school=self.school
        )
        self.orphan_lead = User.objects.create(email='nolead@example.com', first_name='No', role='project_lead')

    def get(self, url, user, params=None):
        token = Session.create_session(user).token
        return self.client.get(url, params or {}, HTTP_AUTHORIZATION=f'Bearer {token}')

    def test_dashboard(self):
        response = self.get(reverse('dashboard'), self.lead)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertEqual(data['role'], 'project_lead')
        self.assertEqual(data['stats']['placementRate'], 100)

    def test_dashboard_without_view(self):
        response = self.get(reverse('dashboard'), self.orphan_lead)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json()['errno'], 0x73)

    def test_navigation(self):
        data = self.get(reverse('navigation'), self.lead, {'path': '/officer-performance'}).json()
        self.assertTrue(data['allowed'])
        self.assertIn('/dashboard', data['routes'])
