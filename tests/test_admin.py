"""
Tests for the member admin: moderation state is changed through actions only.
"""

from django.contrib import admin
from django.test import RequestFactory, TestCase
from django.urls import reverse

from exchange import moderation
from exchange.admin import UserAdmin
from exchange.models import User


class UserAdminTests(TestCase):

    def setUp(self):
        self.superuser = User.objects.create_superuser(
            username='admin', email='admin@test.com', password='adminpass123'
        )
        self.member = User.objects.create_user(
            username='alice', email='alice@test.com', password='testpass123'
        )
        self.model_admin = UserAdmin(User, admin.site)
        self.request = RequestFactory().get('/admin/')
        self.request.user = self.superuser

    def test_reputation_and_status_are_read_only(self):
        readonly = self.model_admin.get_readonly_fields(self.request, self.member)

        for field in ('average_rating', 'total_reviews', 'completed_swaps', 'status', 'banned_at'):
            self.assertIn(field, readonly)

    def test_is_active_editable_for_active_member(self):
        readonly = self.model_admin.get_readonly_fields(self.request, self.member)
        self.assertNotIn('is_active', readonly)

    def test_is_active_read_only_for_banned_member(self):
        moderation.ban_user(self.member.id, 'Spam')
        self.member.refresh_from_db()

        readonly = self.model_admin.get_readonly_fields(self.request, self.member)

        self.assertIn('is_active', readonly)

    def test_add_form_keeps_default_read_only_fields(self):
        readonly = self.model_admin.get_readonly_fields(self.request)
        self.assertNotIn('is_active', readonly)

    def test_change_form_hides_is_active_input_for_banned_member(self):
        self.client.force_login(self.superuser)
        url = reverse('admin:exchange_user_change', args=[self.member.id])

        response = self.client.get(url)
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'name="is_active"')

        moderation.ban_user(self.member.id, 'Spam')

        response = self.client.get(url)
        self.assertEqual(response.status_code, 200)
        self.assertNotContains(response, 'name="is_active"')

    def test_unban_action_reactivates(self):
        moderation.ban_user(self.member.id, 'Spam')
        self.client.force_login(self.superuser)

        response = self.client.post(reverse('admin:exchange_user_changelist'), {
            'action': 'unban_users',
            '_selected_action': [self.member.id],
        })

        self.assertEqual(response.status_code, 302)
        self.member.refresh_from_db()
        self.assertTrue(self.member.is_active)
        self.assertFalse(self.member.is_banned())
