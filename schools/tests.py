from django.test import TestCase, Client
from django.urls import reverse
from rest_framework import status
import json

from users.models import User, Session
from .models import School, Student, PlacementOfficer


def make_user(email, role, school=None):
    user = User(email=email, first_name=email.split('@')[0], role=role, school=school)
    user.set_password('testpass123')
    user.save()
    return user


def auth_header(user):
    return {'HTTP_AUTHORIZATION': f'Bearer {Session.create_session(user).token}'}


class SchoolDataTestCase(TestCase):
    def setUp(self):
        self.client = Client()
        self.school_a = School.objects.create(name='School A', location='Leeds')
        self.school_b = School.objects.create(name='School B', location='York')

        self.admin = make_user('admin@example.com', 'master_admin')
        self.lead = make_user('lead@example.com', 'project_lead', school=self.school_a)
        self.officer_user = make_user('officer@example.com', 'placement_officer', school=self.school_a)
        self.homeless_lead = make_user('nolead@example.com', 'project_lead')

        self.officer_a = PlacementOfficer.objects.create(
            name='Olive', email='officer@example.com', school=self.school_a, user=self.officer_user
        )
        self.officer_b = PlacementOfficer.objects.create(name='Oscar', email='o@b.example', school=self.school_b)

        self.alice = Student.objects.create(
            name='Alice', email='alice@example.com', course='Data Science',
            school=self.school_a, placement_status='placed'
        )
        self.amir = Student.objects.create(name='Amir', email='amir@example.com', school=self.school_a)
        self.bea = Student.objects.create(name='Bea', email='bea@example.com', school=self.school_b)

    def send(self, method, url, user, payload=None):
        kwargs = auth_header(user)
        if payload is not None:
            kwargs.update(data=json.dumps(payload), content_type='application/json')
        return getattr(self.client, method)(url, **kwargs)


class SchoolEndpointTests(SchoolDataTestCase):
    def test_admin_lists_all_schools(self):
        response = self.send('get', reverse('school-list'), self.admin)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['count'], 2)

    def test_lead_lists_own_school_with_stats(self):
        response = self.send('get', reverse('school-list'), self.lead)
        data = response.json()
        self.assertEqual([s['name'] for s in data['schools']], ['School A'])
        self.assertEqual(data['stats']['totalStudents'], 2)
        self.assertEqual(data['stats']['placementRate'], 50)

    def test_lead_without_school_has_no_view(self):
        response = self.send('get', reverse('school-list'), self.homeless_lead)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json()['errno'], 0x73)

    def test_lead_creates_school_and_leads_it(self):
        response = self.send('post', reverse('school-list'), self.lead, {'name': 'School C'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.json()['school']['project_lead_id'], self.lead.id)

    def test_officer_cannot_create_school(self):
        response = self.send('post', reverse('school-list'), self.officer_user, {'name': 'School C'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json()['errno'], 0x70)

    def test_project_lead_must_have_lead_role(self):
        response = self.send('post', reverse('school-list'), self.admin, {
            'name': 'School C', 'project_lead_id': self.officer_user.id
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('project_lead_id', response.json()['details'])

    def test_only_admin_edits_schools(self):
        url = reverse('school-detail', args=[self.school_a.id])
        response = self.send('patch', url, self.lead, {'location': 'Hull'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.send('patch', url, self.admin, {'location': 'Hull'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.school_a.refresh_from_db()
        self.assertEqual(self.school_a.location, 'Hull')

    def test_missing_school(self):
        response = self.send('get', reverse('school-detail', args=[9999]), self.admin)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()['errno'], 0x80)


class StudentEndpointTests(SchoolDataTestCase):
    def test_students_are_scoped_to_school(self):
        response = self.send('get', reverse('student-list'), self.officer_user)
        names = sorted(s['name'] for s in response.json()['students'])
        self.assertEqual(names, ['Alice', 'Amir'])

    def test_placement_status_filter(self):
        response = self.client.get(
            reverse('student-list'), {'placement_status': 'placed'}, **auth_header(self.admin)
        )
        self.assertEqual([s['name'] for s in response.json()['students']], ['Alice'])

    def test_invalid_placement_status_filter(self):
        response = self.client.get(
            reverse('student-list'), {'placement_status': 'hired'}, **auth_header(self.admin)
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['errno'], 0x82)

    def test_search(self):
        response = self.client.get(reverse('student-list'), {'search': 'data'}, **auth_header(self.lead))
        self.assertEqual([s['name'] for s in response.json()['students']], ['Alice'])

    def test_officer_adds_student_to_own_school(self):
        response = self.send('post', reverse('student-list'), self.officer_user, {
            'name': 'Ava', 'email': 'ava@example.com', 'school_id': self.school_b.id
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Student.objects.get(email='ava@example.com').school, self.school_a)

    def test_student_validation(self):
        response = self.send('post', reverse('student-list'), self.admin, {'name': 'Ava', 'email': 'nope'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        data = response.json()
        self.assertEqual(data['errno'], 0x81)
        self.assertIn('email', data['details'])

    def test_other_school_student_is_out_of_scope(self):
        response = self.send('get', reverse('student-detail', args=[self.bea.id]), self.lead)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json()['errno'], 0x73)

    def test_update_student(self):
        response = self.send('patch', reverse('student-detail', args=[self.amir.id]), self.lead, {
            'placement_status': 'placed', 'school_id': self.school_b.id
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.amir.refresh_from_db()
        self.assertEqual(self.amir.placement_status, 'placed')
        self.assertEqual(self.amir.school, self.school_a)

    def test_delete_student(self):
        response = self.send('delete', reverse('student-detail', args=[self.amir.id]), self.officer_user)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Student.objects.filter(id=self.amir.id).exists())


class OfficerEndpointTests(SchoolDataTestCase):
    def test_lead_lists_school_officers(self):
        response = self.send('get', reverse('officer-list'), self.lead)
        self.assertEqual([o['name'] for o in response.json()['officers']], ['Olive'])

    def test_officer_sees_only_self(self):
        PlacementOfficer.objects.create(name='Otto', email='otto@example.com', school=self.school_a)
        response = self.send('get', reverse('officer-list'), self.officer_user)
        self.assertEqual([o['id'] for o in response.json()['officers']], [self.officer_a.id])

    def test_lead_adds_officer(self):
        response = self.send('post', reverse('officer-list'), self.lead, {
            'name': 'Otto', 'email': 'otto@example.com'
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.json()['officer']['school_id'], self.school_a.id)

    def test_officer_cannot_add_officers(self):
        response = self.send('post', reverse('officer-list'), self.officer_user, {
            'name': 'Otto', 'email': 'otto@example.com'
        })
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_lead_cannot_edit_other_school_officer(self):
        response = self.send('patch', reverse('officer-detail', args=[self.officer_b.id]), self.lead, {
            'phone': '0123'
        })
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json()['errno'], 0x73)

    def test_admin_edits_any_officer(self):
        response = self.send('patch', reverse('officer-detail', args=[self.officer_b.id]), self.admin, {
            'phone': '0123'
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['officer']['phone'], '0123')
