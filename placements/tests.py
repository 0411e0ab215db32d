from datetime import date
import json
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase, SimpleTestCase, Client, override_settings
from django.urls import reverse
from rest_framework import status

from companies.models import Company
from schools.models import School, Student, PlacementOfficer
from users.models import User, Session
from .metrics import (
    ScoringWeights, compute_officer_metrics, compute_performance_scores,
    filter_placements, monthly_breakdown, score_officer, summarize_metrics, top_officers,
)
from .models import Placement
from .serializers import PlacementSerializer
from .utils import round_half_up, as_date, newest_first


def placement(pid, officer_id, company_id, placement_date, status='completed', started_at=None):
    return {
        'id': pid,
        'student_id': pid,
        'company_id': company_id,
        'placement_officer_id': officer_id,
        'placement_date': placement_date,
        'started_at': started_at,
        'status': status,
    }


OFFICERS = [
    {'id': 1, 'name': 'Olive', 'school_id': 1},
    {'id': 2, 'name': 'Oscar', 'school_id': 1},
]


class UtilsTests(SimpleTestCase):
    def test_round_half_up(self):
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(66.66), 67)
        self.assertEqual(round_half_up(33.33), 33)

    def test_as_date(self):
        self.assertEqual(as_date('2023-06-15'), date(2023, 6, 15))
        self.assertEqual(as_date('2023-06-15T10:00:00Z'), date(2023, 6, 15))
        self.assertIsNone(as_date('not a date'))
        self.assertIsNone(as_date(''))

    def test_newest_first_puts_undated_last(self):
        rows = [{'placement_date': None}, {'placement_date': '2023-01-01'}, {'placement_date': '2023-03-01'}]
        self.assertEqual(
            [r['placement_date'] for r in newest_first(rows)],
            ['2023-03-01', '2023-01-01', None]
        )


class OfficerMetricsTests(SimpleTestCase):
    def setUp(self):
        self.placements = [
            placement(1, 1, 10, '2023-06-03', started_at='2023-05-24'),
            placement(2, 1, 11, '2023-06-20', status='in_progress', started_at='2023-06-10'),
            placement(3, 1, 10, '2023-07-01'),
            placement(4, 2, 12, '2022-06-15'),
            placement(5, 2, 13, '2023-01-09', status='in_progress'),
            placement(6, 99, 14, '2023-06-10'),
            placement(7, 1, 15, 'garbage'),
        ]

    def by_id(self, metrics):
        return {m['id']: m for m in metrics}

    def test_month_filter_is_zero_based(self):
        metrics = self.by_id(compute_officer_metrics(self.placements, OFFICERS, month=5, year=2023))
        self.assertEqual(metrics[1]['totalPlacements'], 2)
        self.assertEqual(metrics[1]['completedPlacements'], 1)
        self.assertEqual(metrics[1]['inProgressPlacements'], 1)
        self.assertEqual(metrics[2]['totalPlacements'], 0)

    def test_year_only_filter(self):
        metrics = self.by_id(compute_officer_metrics(self.placements, OFFICERS, year=2022))
        self.assertEqual(metrics[2]['totalPlacements'], 1)
        self.assertEqual(metrics[1]['totalPlacements'], 0)

    def test_month_without_year_is_ignored(self):
        unfiltered = compute_officer_metrics(self.placements, OFFICERS)
        self.assertEqual(compute_officer_metrics(self.placements, OFFICERS, month=5), unfiltered)

    def test_officer_filter(self):
        metrics = compute_officer_metrics(self.placements, OFFICERS, officer_id=2)
        # Every officer keeps a record; only the selected one has placements
        self.assertEqual([m['id'] for m in metrics], [1, 2])
        self.assertEqual(metrics[0]['totalPlacements'], 0)
        self.assertEqual(metrics[0]['lastPlacementDate'], '')
        self.assertEqual(metrics[1]['totalPlacements'], 2)

    def test_orphans_and_bad_dates_are_skipped(self):
        metrics = self.by_id(compute_officer_metrics(self.placements, OFFICERS))
        self.assertEqual(set(metrics), {1, 2})
        self.assertEqual(metrics[1]['totalPlacements'], 3)

    def test_counts_and_rates(self):
        metrics = self.by_id(compute_officer_metrics(self.placements, OFFICERS))
        olive = metrics[1]
        self.assertEqual(olive['companiesCollaborated'], 2)
        self.assertEqual(olive['placementSuccessRate'], 67)
        self.assertEqual(olive['lastPlacementDate'], '2023-07-01')
        for m in metrics.values():
            self.assertLessEqual(m['completedPlacements'] + m['inProgressPlacements'], m['totalPlacements'])
            self.assertLessEqual(m['companiesCollaborated'], m['totalPlacements'])

    def test_average_placement_time_uses_start_dates(self):
        metrics = self.by_id(compute_officer_metrics(self.placements, OFFICERS))
        # 10 days and 10 days; the third placement has no start date
        self.assertEqual(metrics[1]['averagePlacementTime'], 10)
        self.assertEqual(metrics[2]['averagePlacementTime'], 0)

    def test_officer_without_placements(self):
        metrics = compute_officer_metrics([], OFFICERS)
        self.assertEqual(metrics[0]['placementSuccessRate'], 0)
        self.assertEqual(metrics[0]['lastPlacementDate'], '')

    def test_inputs_are_not_mutated(self):
        before = [dict(p) for p in self.placements]
        compute_officer_metrics(self.placements, OFFICERS, month=5, year=2023)
        self.assertEqual(self.placements, before)


class PerformanceScoreTests(SimpleTestCase):
    def metrics(self, **overrides):
        base = {
            'id': 1, 'name': 'Olive', 'totalPlacements': 5, 'completedPlacements': 4,
            'companiesCollaborated': 5, 'averagePlacementTime': 10,
        }
        base.update(overrides)
        return base

    def test_overall_score(self):
        score = score_officer(self.metrics(), ScoringWeights())
        self.assertEqual(score['placementScore'], 100)
        self.assertEqual(score['companyEngagementScore'], 100)
        self.assertEqual(score['timeEfficiencyScore'], 80)
        self.assertEqual(score['overallScore'], 93)

    def test_time_efficiency_floor(self):
        score = score_officer(self.metrics(averagePlacementTime=80), ScoringWeights())
        self.assertEqual(score['timeEfficiencyScore'], 0)

    def test_scores_sorted_descending(self):
        scores = compute_performance_scores([
            self.metrics(id=1, completedPlacements=1, companiesCollaborated=1),
            self.metrics(id=2),
        ], ScoringWeights())
        self.assertEqual([s['id'] for s in scores], [2, 1])

    @override_settings(PERFORMANCE_SCORING={'PLACEMENT_WEIGHT': 10, 'COMPANY_WEIGHT': 20,
                                            'TIME_PENALTY': 2, 'SCORE_CAP': 100})
    def test_weights_come_from_settings(self):
        score = score_officer(self.metrics())
        self.assertEqual(score['placementScore'], 40)

    def test_summary_and_top_officers(self):
        metrics = [
            {**self.metrics(id=1, completedPlacements=1), 'placementSuccessRate': 50},
            {**self.metrics(id=2, completedPlacements=3), 'placementSuccessRate': 75},
        ]
        companies = [{'collaboration_status': 'active'}, {'collaboration_status': 'inactive'}]
        summary = summarize_metrics(metrics, companies)
        self.assertEqual(summary['completedPlacements'], 4)
        self.assertEqual(summary['activeCompanies'], 1)
        self.assertEqual(summary['averageSuccessRate'], 63)
        self.assertEqual(summarize_metrics([], [])['averageSuccessRate'], 0)
        self.assertEqual([m['id'] for m in top_officers(metrics, limit=1)], [2])


class MonthlyBreakdownTests(SimpleTestCase):
    def test_twelve_months(self):
        rows = monthly_breakdown([
            placement(1, 1, 10, '2023-06-03'),
            placement(2, 1, 11, '2023-06-20', status='in_progress'),
        ], 2023)
        self.assertEqual(len(rows), 12)
        june = rows[5]
        self.assertEqual(june['month'], 'Jun')
        self.assertEqual((june['placements'], june['completions'], june['companies']), (2, 1, 2))

    def test_single_month(self):
        rows = monthly_breakdown([placement(1, 1, 10, '2023-06-03')], 2023, month=0)
        self.assertEqual(rows, [{'month': 'Jan', 'placements': 0, 'completions': 0, 'companies': 0}])

    def test_filter_placements_by_officer(self):
        rows = [placement(1, 1, 10, '2023-06-03'), placement(2, 2, 10, '2023-06-03')]
        self.assertEqual([p['id'] for p in filter_placements(rows, officer_id=2)], [2])


def make_user(email, role, school=None):
    user = User(email=email, first_name=email.split('@')[0], role=role, school=school)
    user.set_password('testpass123')
    user.save()
    return user


def auth_header(user):
    return {'HTTP_AUTHORIZATION': f'Bearer {Session.create_session(user).token}'}


class PlacementEndpointTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.school_a = School.objects.create(name='School A')
        self.school_b = School.objects.create(name='School B')
        self.admin = make_user('admin@example.com', 'master_admin')
        self.lead = make_user('lead@example.com', 'project_lead', school=self.school_a)
        self.officer_user = make_user('officer@example.com', 'placement_officer', school=self.school_a)

        self.officer_a = PlacementOfficer.objects.create(
            name='Olive', email='officer@example.com', school=self.school_a, user=self.officer_user
        )
        self.officer_b = PlacementOfficer.objects.create(name='Oscar', email='o@b.example', school=self.school_b)
        self.student_a = Student.objects.create(name='Alice', email='alice@example.com', school=self.school_a)
        self.student_b = Student.objects.create(name='Bea', email='bea@example.com', school=self.school_b)
        self.acme = Company.objects.create(name='Acme')

        self.own = Placement.objects.create(
            student=self.student_a, company=self.acme, placement_officer=self.officer_a,
            started_at=date(2023, 5, 24), placement_date=date(2023, 6, 3), status='completed'
        )
        self.foreign = Placement.objects.create(
            student=self.student_b, company=self.acme, placement_officer=self.officer_b,
            placement_date=date(2023, 6, 10)
        )

    def post(self, user, payload):
        return self.client.post(
            reverse('placement-list'), data=json.dumps(payload),
            content_type='application/json', **auth_header(user)
        )

    def test_officer_sees_own_placements(self):
        response = self.client.get(reverse('placement-list'), **auth_header(self.officer_user))
        self.assertEqual([p['id'] for p in response.json()['placements']], [self.own.id])

    def test_officer_placement_is_always_their_own(self):
        response = self.post(self.officer_user, {
            'student_id': self.student_a.id, 'company_id': self.acme.id,
            'placement_officer_id': self.officer_b.id, 'placement_date': '2023-07-01',
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.json()['placement']['placement_officer_id'], self.officer_a.id)

    def test_lead_cannot_create_outside_school(self):
        response = self.post(self.lead, {
            'student_id': self.student_b.id, 'company_id': self.acme.id,
            'placement_officer_id': self.officer_b.id,
        })
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json()['errno'], 0x73)

    def test_start_after_placement_date_rejected(self):
        response = self.post(self.admin, {
            'student_id': self.student_a.id, 'company_id': self.acme.id,
            'placement_officer_id': self.officer_a.id,
            'started_at': '2023-08-01', 'placement_date': '2023-07-01',
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['errno'], 0x81)

    def test_foreign_placement_is_out_of_scope(self):
        response = self.client.get(
            reverse('placement-detail', args=[self.foreign.id]), **auth_header(self.lead)
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_officer_updates_own_placement(self):
        response = self.client.patch(
            reverse('placement-detail', args=[self.own.id]),
            data=json.dumps({'status': 'in_progress', 'placement_officer_id': self.officer_b.id}),
            content_type='application/json', **auth_header(self.officer_user)
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.own.refresh_from_db()
        self.assertEqual(self.own.status, 'in_progress')
        self.assertEqual(self.own.placement_officer, self.officer_a)

    def test_failed_delete_reports_unexpected_error(self):
        with mock.patch.object(Placement, 'delete', side_effect=DatabaseError("disk full")):
            with self.assertLogs('placements.views', level='ERROR'):
                response = self.client.delete(
                    reverse('placement-detail', args=[self.own.id]), **auth_header(self.admin)
                )
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.json()['errno'], 0xFF)
        self.assertTrue(Placement.objects.filter(id=self.own.id).exists())

    def test_failed_update_reports_unexpected_error(self):
        with mock.patch.object(PlacementSerializer, 'save', side_effect=DatabaseError("disk full")):
            with self.assertLogs('placements.views', level='ERROR'):
                response = self.client.patch(
                    reverse('placement-detail', args=[self.own.id]),
                    data=json.dumps({'status': 'in_progress'}),
                    content_type='application/json', **auth_header(self.admin)
                )
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.json()['errno'], 0xFF)

    def test_performance_for_lead(self):
        response = self.client.get(
            reverse('officer-performance'), {'month': 5, 'year': 2023}, **auth_header(self.lead)
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertEqual([m['name'] for m in data['metrics']], ['Olive'])
        self.assertEqual(data['metrics'][0]['averagePlacementTime'], 10)
        self.assertEqual(data['scores'][0]['timeEfficiencyScore'], 80)

    def test_performance_denied_for_officer(self):
        response = self.client.get(reverse('officer-performance'), **auth_header(self.officer_user))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json()['errno'], 0x70)

    def test_invalid_month(self):
        response = self.client.get(
            reverse('officer-performance'), {'month': 12, 'year': 2023}, **auth_header(self.admin)
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['errno'], 0x82)

    def test_monthly_performance(self):
        response = self.client.get(
            reverse('monthly-performance'), {'year': 2023}, **auth_header(self.admin)
        )
        months = response.json()['months']
        self.assertEqual(months[5]['placements'], 2)
