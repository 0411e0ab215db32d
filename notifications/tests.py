from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.test import TestCase, SimpleTestCase, Client
from django.urls import reverse
from django.utils.timezone import now
from rest_framework import status

from companies.models import Company
from schools.models import School, Student
from users.models import User, Session
from .feed import ChangeFeed, feed
from .models import ChangeEvent


def event(table='students', kind='INSERT', record_id=1):
    return {'id': record_id, 'table': table, 'event': kind, 'record_id': record_id, 'payload': {}}


class ChangeFeedTests(SimpleTestCase):
    def test_table_and_wildcard_subscribers(self):
        change_feed = ChangeFeed()
        students, everything = [], []
        change_feed.subscribe('students', students.append)
        change_feed.subscribe('*', everything.append)

        change_feed.publish(event('students'))
        change_feed.publish(event('companies'))

        self.assertEqual(len(students), 1)
        self.assertEqual([e['table'] for e in everything], ['students', 'companies'])

    def test_unsubscribe(self):
        change_feed = ChangeFeed()
        received = []
        unsubscribe = change_feed.subscribe('students', received.append)
        unsubscribe()
        unsubscribe()
        change_feed.publish(event())
        self.assertEqual(received, [])
        self.assertEqual(change_feed.subscriber_count(), 0)

    def test_failing_subscriber_does_not_block_others(self):
        change_feed = ChangeFeed()
        received = []

        def broken(_):
            raise RuntimeError("boom")

        change_feed.subscribe('students', broken)
        change_feed.subscribe('students', received.append)
        with self.assertLogs('notifications.feed', level='ERROR'):
            change_feed.publish(event())
        self.assertEqual(len(received), 1)


class ChangeRecordingTests(TestCase):
    def setUp(self):
        self.received = []
        self.unsubscribe = feed.subscribe('*', self.received.append)
        self.addCleanup(self.unsubscribe)

    def test_insert_update_delete_are_recorded(self):
        school = School.objects.create(name='School A')
        student = Student.objects.create(name='Alice', email='alice@example.com', school=school)
        student.placement_status = 'placed'
        student.save()
        student_id = student.id
        student.delete()

        events = list(
            ChangeEvent.objects.filter(table='students').values_list('event', 'record_id')
        )
        self.assertEqual(events, [('INSERT', student_id), ('UPDATE', student_id), ('DELETE', student_id)])
        update = ChangeEvent.objects.get(table='students', event='UPDATE')
        self.assertEqual(update.payload['placement_status'], 'placed')

    def test_published_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            Company.objects.create(name='Acme')
            self.assertEqual(self.received, [])
        self.assertEqual(len(callbacks), 1)
        self.assertEqual(self.received[0]['table'], 'companies')
        self.assertEqual(self.received[0]['event'], 'INSERT')

    def test_untracked_models_are_ignored(self):
        User.objects.create(email='x@example.com', first_name='X', role='master_admin')
        self.assertFalse(ChangeEvent.objects.exists())


class ChangeEndpointTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.school = School.objects.create(name='School A')
        self.admin = User.objects.create(email='admin@example.com', first_name='Ada', role='master_admin')
        self.lead = User.objects.create(
            email='lead@example.com', first_name='Lee', role='project_lead', school=self.school
        )
        Company.objects.create(name='Acme')
        Company.objects.create(name='Globex')

    def get(self, user, params=None):
        token = Session.create_session(user).token
        return self.client.get(reverse('list-changes'), params or {}, HTTP_AUTHORIZATION=f'Bearer {token}')

    def test_admin_sees_payloads(self):
        response = self.get(self.admin)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertEqual(data['count'], 3)
        self.assertEqual(data['changes'][-1]['payload']['name'], 'Globex')

    def test_payloads_hidden_from_other_roles(self):
        data = self.get(self.lead).json()
        self.assertNotIn('payload', data['changes'][0])

    def test_since_and_table(self):
        first = ChangeEvent.objects.filter(table='companies').first()
        data = self.get(self.admin, {'table': 'companies', 'since': first.id}).json()
        self.assertEqual(data['count'], 1)
        self.assertEqual(data['last_id'], data['changes'][0]['id'])

    def test_invalid_filters(self):
        self.assertEqual(self.get(self.admin, {'table': 'users'}).json()['errno'], 0x82)
        self.assertEqual(self.get(self.admin, {'since': 'yesterday'}).json()['errno'], 0x82)

    def test_requires_token(self):
        response = self.client.get(reverse('list-changes'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ChangeLogRetentionTests(TestCase):
    def setUp(self):
        self.old = Company.objects.create(name='Acme')
        self.recent = Company.objects.create(name='Globex')
        ChangeEvent.objects.filter(record_id=self.old.id).update(created_at=now() - timedelta(days=40))

    def test_prune_removes_only_expired_events(self):
        self.assertEqual(ChangeEvent.prune(30), 1)
        self.assertEqual(
            list(ChangeEvent.objects.values_list('record_id', flat=True)),
            [self.recent.id]
        )

    def test_prune_command(self):
        out = StringIO()
        call_command('prune_changes', days=30, stdout=out)
        self.assertIn('Pruned 1 change events', out.getvalue())
        self.assertEqual(ChangeEvent.objects.count(), 1)
