from django.test import TestCase, SimpleTestCase, Client
from django.urls import reverse
from django.utils.timezone import now, timedelta
from rest_framework import status
import json

from schools.models import School, PlacementOfficer
from .models import User, Session
from .roles import Role, SessionContext, is_allowed


def make_user(email, role, school=None, password='testpass123', first_name='Test'):
    user = User(email=email, first_name=first_name, last_name='User', role=role, school=school)
    user.set_password(password)
    user.save()
    return user


def auth_header(user):
    return {'HTTP_AUTHORIZATION': f'Bearer {Session.create_session(user).token}'}


class RoleTests(SimpleTestCase):
    def test_unauthenticated_is_always_denied(self):
        self.assertFalse(is_allowed(None))
        self.assertFalse(is_allowed(None, [Role.MASTER_ADMIN]))

    def test_no_requirement_admits_every_role(self):
        for role in Role:
            self.assertTrue(is_allowed(role))

    def test_required_roles(self):
        self.assertTrue(is_allowed(Role.PROJECT_LEAD, [Role.MASTER_ADMIN, Role.PROJECT_LEAD]))
        self.assertFalse(is_allowed(Role.PLACEMENT_OFFICER, [Role.MASTER_ADMIN, Role.PROJECT_LEAD]))
        self.assertTrue(is_allowed('master_admin', ['master_admin']))

    def test_parse_never_raises(self):
        self.assertEqual(Role.parse('project_lead'), Role.PROJECT_LEAD)
        self.assertEqual(Role.parse('janitor'), Role.UNKNOWN)
        self.assertEqual(Role.parse(None), Role.UNKNOWN)
        self.assertEqual(Role.MASTER_ADMIN.label, 'Master Admin')

    def test_anonymous_context(self):
        identity = SessionContext.anonymous()
        self.assertFalse(identity.is_authenticated)


class UserModelTests(TestCase):
    def setUp(self):
        self.school = School.objects.create(name='North Campus')
        self.user = make_user('test@example.com', 'placement_officer', school=self.school)

    def test_password_hashing(self):
        """Passwords are stored hashed"""
        self.assertTrue(self.user.check_password('testpass123'))
        self.assertFalse(self.user.check_password('wrongpass'))
        self.assertNotEqual(self.user.password_hash, 'testpass123')

    def test_session_context_from_user(self):
        officer = PlacementOfficer.objects.create(
            name='Test User', email=self.user.email, school=self.school, user=self.user
        )
        identity = SessionContext.from_user(User.objects.get(id=self.user.id))
        self.assertEqual(identity.role, Role.PLACEMENT_OFFICER)
        self.assertEqual(identity.school_id, self.school.id)
        self.assertEqual(identity.officer_id, officer.id)

    def test_unrecognised_stored_role_maps_to_unknown(self):
        User.objects.filter(id=self.user.id).update(role='janitor')
        user = User.objects.get(id=self.user.id)
        self.assertEqual(user.role_enum, Role.UNKNOWN)
        self.assertEqual(SessionContext.from_user(user).role, Role.UNKNOWN)

    def test_session_context_without_officer_profile(self):
        identity = SessionContext.from_user(self.user)
        self.assertIsNone(identity.officer_id)


class SessionModelTests(TestCase):
    def setUp(self):
        self.user = make_user('test@example.com', 'master_admin')

    def test_session_creation(self):
        """Sessions get a token and can be expired"""
        session = Session.create_session(self.user)
        self.assertIsNotNone(session.token)
        self.assertFalse(session.is_expired)
        self.assertFalse(session.has_lapsed())

        session.expire()
        self.assertTrue(session.is_expired)

    def test_cleanup_expired(self):
        lapsed = Session.objects.create(user=self.user, expires_at=now() - timedelta(hours=1))
        live = Session.create_session(self.user)
        Session.cleanup_expired()
        lapsed.refresh_from_db()
        live.refresh_from_db()
        self.assertTrue(lapsed.is_expired)
        self.assertFalse(live.is_expired)


class AuthViewTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.user = make_user('test@example.com', 'master_admin')
        self.login_url = reverse('login')
        self.logout_url = reverse('logout')
        self.me_url = reverse('me')
        self.refresh_url = reverse('refresh_token')

    def login(self, password='testpass123'):
        return self.client.post(
            self.login_url,
            data=json.dumps({'email': 'test@example.com', 'password': password}),
            content_type='application/json'
        )

    def test_successful_login(self):
        """Login returns a token backed by a session"""
        response = self.login()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual(data['user']['role'], 'master_admin')
        self.assertTrue(Session.objects.filter(token=data['token']).exists())

    def test_login_invalid_credentials(self):
        response = self.login(password='wrongpass')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()['errno'], 0x11)

    def test_login_missing_fields(self):
        response = self.client.post(
            self.login_url,
            data=json.dumps({'email': 'test@example.com'}),
            content_type='application/json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['errno'], 0x10)

    def test_login_rejects_deleted_user(self):
        self.user.deleted_at = now()
        self.user.save()
        self.assertEqual(self.login().status_code, status.HTTP_401_UNAUTHORIZED)

    def test_invalid_json(self):
        response = self.client.post(self.login_url, data='{not json', content_type='application/json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['errno'], 0x61)

    def test_unsupported_content_type(self):
        response = self.client.post(self.login_url, data='email=x', content_type='text/plain')
        self.assertEqual(response.status_code, 415)
        self.assertEqual(response.json()['errno'], 0x62)

    def test_me_endpoint(self):
        token = self.login().json()['token']
        response = self.client.get(self.me_url, HTTP_AUTHORIZATION=f'Bearer {token}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertEqual(data['user']['email'], 'test@example.com')
        self.assertEqual(data['user']['role_label'], 'Master Admin')

    def test_missing_token(self):
        response = self.client.get(self.me_url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()['errno'], 0x20)

    def test_malformed_token(self):
        response = self.client.get(self.me_url, HTTP_AUTHORIZATION='Bearer not-a-uuid')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()['errno'], 0x21)

    def test_logout(self):
        token = self.login().json()['token']
        response = self.client.post(self.logout_url, HTTP_AUTHORIZATION=f'Bearer {token}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(Session.objects.get(token=token).is_expired)

        response = self.client.get(self.me_url, HTTP_AUTHORIZATION=f'Bearer {token}')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_token_refresh(self):
        token = self.login().json()['token']
        response = self.client.post(self.refresh_url, HTTP_AUTHORIZATION=f'Bearer {token}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.json()['success'])

    def test_expired_token_is_marked_expired(self):
        session = Session.objects.create(user=self.user, expires_at=now() - timedelta(hours=1))
        response = self.client.post(self.refresh_url, HTTP_AUTHORIZATION=f'Bearer {session.token}')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()['errno'], 0x21)
        session.refresh_from_db()
        self.assertTrue(session.is_expired)


class UserDirectoryTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.school_a = School.objects.create(name='School A')
        self.school_b = School.objects.create(name='School B')
        self.admin = make_user('admin@example.com', 'master_admin')
        self.lead = make_user('lead@example.com', 'project_lead', school=self.school_a)
        self.other_lead = make_user('lead-b@example.com', 'project_lead', school=self.school_b)
        self.officer = make_user('officer@example.com', 'placement_officer', school=self.school_a)
        self.url = reverse('user-directory')

    def post(self, user, payload):
        return self.client.post(
            self.url, data=json.dumps(payload), content_type='application/json', **auth_header(user)
        )

    def test_admin_sees_leads_and_officers_only(self):
        response = self.client.get(self.url, **auth_header(self.admin))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        emails = {u['email'] for u in response.json()['users']}
        self.assertEqual(emails, {'lead@example.com', 'lead-b@example.com', 'officer@example.com'})

    def test_lead_sees_own_school(self):
        response = self.client.get(self.url, **auth_header(self.lead))
        emails = {u['email'] for u in response.json()['users']}
        self.assertEqual(emails, {'lead@example.com', 'officer@example.com'})

    def test_role_filter(self):
        response = self.client.get(self.url, {'role': 'placement_officer'}, **auth_header(self.admin))
        self.assertEqual([u['email'] for u in response.json()['users']], ['officer@example.com'])

    def test_officer_is_denied(self):
        response = self.client.get(self.url, **auth_header(self.officer))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        data = response.json()
        self.assertEqual(data['errno'], 0x70)
        self.assertEqual(data['redirect_to'], '/dashboard')

    def test_admin_creates_officer_with_profile(self):
        response = self.post(self.admin, {
            'email': 'new@example.com', 'password': 'secret123', 'first_name': 'New',
            'role': 'placement_officer', 'school_id': self.school_b.id,
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(email='new@example.com')
        self.assertEqual(user.officer_profile.school, self.school_b)

    def test_lead_adds_officer_to_own_school(self):
        response = self.post(self.lead, {
            'email': 'new@example.com', 'password': 'secret123', 'first_name': 'New',
            'role': 'placement_officer', 'school_id': self.school_b.id,
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(User.objects.get(email='new@example.com').school, self.school_a)

    def test_lead_cannot_create_admin(self):
        response = self.post(self.lead, {
            'email': 'new@example.com', 'password': 'secret123', 'first_name': 'New',
            'role': 'master_admin',
        })
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json()['errno'], 0x73)

    def test_missing_fields(self):
        response = self.post(self.admin, {'email': 'new@example.com'})
        self.assertEqual(response.json()['errno'], 0x30)

    def test_invalid_role(self):
        response = self.post(self.admin, {
            'email': 'new@example.com', 'password': 'x', 'first_name': 'New', 'role': 'student',
        })
        self.assertEqual(response.json()['errno'], 0x31)

    def test_school_required_for_scoped_roles(self):
        response = self.post(self.admin, {
            'email': 'new@example.com', 'password': 'x', 'first_name': 'New', 'role': 'project_lead',
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['errno'], 0x30)

    def test_non_scalar_school_id(self):
        response = self.post(self.admin, {
            'email': 'new@example.com', 'password': 'x', 'first_name': 'New',
            'role': 'project_lead', 'school_id': [self.school_a.id],
        })
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()['errno'], 0x80)
        self.assertFalse(User.objects.filter(email='new@example.com').exists())

    def test_duplicate_email(self):
        response = self.post(self.admin, {
            'email': 'lead@example.com', 'password': 'x', 'first_name': 'Dup',
            'role': 'project_lead', 'school_id': self.school_a.id,
        })
        self.assertEqual(response.json()['errno'], 0x32)

    def test_admin_soft_deletes_user(self):
        response = self.client.delete(
            reverse('delete-user', args=[self.officer.id]), **auth_header(self.admin)
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.officer.refresh_from_db()
        self.assertIsNotNone(self.officer.deleted_at)

    def test_admin_cannot_delete_self(self):
        response = self.client.delete(
            reverse('delete-user', args=[self.admin.id]), **auth_header(self.admin)
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
