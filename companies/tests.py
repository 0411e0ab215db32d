from django.test import TestCase, Client
from django.urls import reverse
from django.utils import timezone
from datetime import timedelta
from rest_framework import status
import json

from notifications.models import ChangeEvent
from schools.models import School, PlacementOfficer
from users.models import User, Session
from .models import Company, CompanyInteraction


def make_user(email, role, school=None):
    user = User(email=email, first_name=email.split('@')[0], role=role, school=school)
    user.set_password('testpass123')
    user.save()
    return user


def auth_header(user):
    return {'HTTP_AUTHORIZATION': f'Bearer {Session.create_session(user).token}'}


class CompanyEndpointTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.school = School.objects.create(name='School A')
        self.admin = make_user('admin@example.com', 'master_admin')
        self.officer_user = make_user('officer@example.com', 'placement_officer', school=self.school)
        self.officer = PlacementOfficer.objects.create(
            name='Olive', email='officer@example.com', school=self.school, user=self.officer_user
        )
        self.acme = Company.objects.create(name='Acme', collaboration_status='active')
        self.globex = Company.objects.create(name='Globex', collaboration_status='inactive')

    def send(self, method, url, user, payload=None):
        kwargs = auth_header(user)
        if payload is not None:
            kwargs.update(data=json.dumps(payload), content_type='application/json')
        return getattr(self.client, method)(url, **kwargs)

    def test_every_role_lists_all_companies(self):
        response = self.send('get', reverse('company-list'), self.officer_user)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['name'] for c in response.json()['companies']], ['Acme', 'Globex'])

    def test_collaboration_status_filter(self):
        response = self.client.get(
            reverse('company-list'), {'collaboration_status': 'active'}, **auth_header(self.admin)
        )
        self.assertEqual([c['name'] for c in response.json()['companies']], ['Acme'])

    def test_unknown_collaboration_status(self):
        response = self.client.get(
            reverse('company-list'), {'collaboration_status': 'dormant'}, **auth_header(self.admin)
        )
        self.assertEqual(response.json()['errno'], 0x82)

    def test_create_company(self):
        response = self.send('post', reverse('company-list'), self.officer_user, {
            'name': 'Initech', 'job_roles_offered': ['Analyst', 'Engineer'], 'company_status': 'partner'
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        company = Company.objects.get(name='Initech')
        self.assertEqual(company.job_roles_offered, ['Analyst', 'Engineer'])

    def test_invalid_company_status(self):
        response = self.send('post', reverse('company-list'), self.admin, {
            'name': 'Initech', 'company_status': 'friend'
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('company_status', response.json()['details'])

    def test_officer_updates_company(self):
        response = self.send('patch', reverse('company-detail', args=[self.globex.id]), self.officer_user, {
            'collaboration_status': 'active'
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.globex.refresh_from_db()
        self.assertEqual(self.globex.collaboration_status, 'active')

    def test_officer_cannot_delete_company(self):
        response = self.send('delete', reverse('company-detail', args=[self.acme.id]), self.officer_user)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Company.objects.filter(id=self.acme.id).exists())


class InteractionTimelineTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.school = School.objects.create(name='School A')
        self.admin = make_user('admin@example.com', 'master_admin')
        self.officer_user = make_user('officer@example.com', 'placement_officer', school=self.school)
        self.officer = PlacementOfficer.objects.create(
            name='Olive', email='officer@example.com', school=self.school, user=self.officer_user
        )
        self.acme = Company.objects.create(name='Acme')
        self.url = reverse('company-interactions', args=[self.acme.id])

    def post(self, user, payload):
        return self.client.post(
            self.url, data=json.dumps(payload), content_type='application/json', **auth_header(user)
        )

    def test_officer_logs_interaction_as_self(self):
        response = self.post(self.officer_user, {'interaction_type': 'call', 'description': 'Intro call'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        interaction = response.json()['interaction']
        self.assertEqual(interaction['placement_officer_id'], self.officer.id)
        self.assertEqual(interaction['placement_officer_name'], 'Olive')

    def test_admin_must_name_officer(self):
        response = self.post(self.admin, {'interaction_type': 'call', 'description': 'Intro call'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('placement_officer_id', response.json()['details'])

    def test_blank_description_rejected(self):
        response = self.post(self.officer_user, {'interaction_type': 'email', 'description': '   '})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_timeline_is_newest_first(self):
        earlier = timezone.now() - timedelta(days=3)
        CompanyInteraction.objects.create(
            company=self.acme, placement_officer=self.officer, interaction_type='meeting',
            description='Kickoff', interaction_date=earlier
        )
        CompanyInteraction.objects.create(
            company=self.acme, placement_officer=None, interaction_type='email',
            description='Follow up'
        )
        response = self.client.get(self.url, **auth_header(self.officer_user))
        interactions = response.json()['interactions']
        self.assertEqual([i['description'] for i in interactions], ['Follow up', 'Kickoff'])
        self.assertEqual(interactions[0]['placement_officer_name'], 'Unknown Officer')

    def test_missing_company(self):
        response = self.client.get(
            reverse('company-interactions', args=[9999]), **auth_header(self.admin)
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_deleting_company_removes_its_interactions(self):
        interaction = CompanyInteraction.objects.create(
            company=self.acme, placement_officer=self.officer, interaction_type='call',
            description='Intro call'
        )
        response = self.client.delete(reverse('company-detail', args=[self.acme.id]), **auth_header(self.admin))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.assertFalse(CompanyInteraction.objects.filter(company_id=self.acme.id).exists())
        self.assertTrue(ChangeEvent.objects.filter(
            table='company_interactions', event='DELETE', record_id=interaction.id
        ).exists())
        self.assertTrue(ChangeEvent.objects.filter(
            table='companies', event='DELETE', record_id=self.acme.id
        ).exists())
