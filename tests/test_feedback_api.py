"""
Integration tests for feedback, account and moderation endpoints.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from exchange import moderation, ratings, swaps
from exchange.models import Feedback, Swap, SwapStatus


User = get_user_model()


def make_member(username, offered=(), **extra):
    return User.objects.create_user(
        username=username,
        email=f'{username}@test.com',
        password='testpass123',
        skills_offered=list(offered),
        **extra
    )


def completed_swap(requester, provider):
    return Swap.objects.create(
        requester=requester,
        provider=provider,
        offered_skill='Guitar',
        requested_skill='Spanish',
        status=SwapStatus.COMPLETED,
        requester_completed=True,
        provider_completed=True,
        completed_at=timezone.now(),
    )


class FeedbackEndpointTests(TestCase):
    """Test POST/PATCH/DELETE of feedback."""

    def setUp(self):
        self.client = APIClient()
        self.alice = make_member('alice')
        self.bob = make_member('bob')
        self.carol = make_member('carol')
        self.swap = completed_swap(self.alice, self.bob)

    def test_submit_feedback(self):
        self.client.force_authenticate(user=self.alice)

        response = self.client.post('/api/feedback/', {
            'swap_id': self.swap.id,
            'rating': 4,
            'comment': 'Patient and clear',
            'categories': {'communication': 5},
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['rating'], 4)
        self.assertEqual(response.data['reviewer']['id'], self.alice.id)
        self.assertEqual(response.data['reviewee']['id'], self.bob.id)
        self.assertEqual(response.data['categories']['communication'], 5)
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.average_rating, Decimal('4.0'))

    def test_duplicate_feedback_returns_409(self):
        self.client.force_authenticate(user=self.alice)
        payload = {'swap_id': self.swap.id, 'rating': 4}
        self.client.post('/api/feedback/', payload, format='json')

        response = self.client.post('/api/feedback/', payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(Feedback.objects.count(), 1)

    def test_outsider_feedback_returns_403(self):
        self.client.force_authenticate(user=self.carol)

        response = self.client.post('/api/feedback/', {'swap_id': self.swap.id, 'rating': 1}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_feedback_on_unfinished_swap_returns_400(self):
        self.alice.skills_offered = ['Guitar']
        self.alice.save()
        pending = swaps.create_request(self.alice, self.bob.id, 'Guitar', 'Piano')
        self.client.force_authenticate(user=self.alice)

        response = self.client.post('/api/feedback/', {'swap_id': pending.id, 'rating': 5}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'IllegalState')

    def test_rating_out_of_range_returns_400(self):
        self.client.force_authenticate(user=self.alice)

        response = self.client.post('/api/feedback/', {'swap_id': self.swap.id, 'rating': 6}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('rating', response.data)

    def test_author_edits_feedback(self):
        feedback = ratings.submit_feedback(self.swap.id, self.alice, 2)
        self.client.force_authenticate(user=self.alice)

        response = self.client.patch(f'/api/feedback/{feedback.id}/', {'rating': 5}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['rating'], 5)
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.average_rating, Decimal('5.0'))

    def test_non_author_edit_returns_403(self):
        feedback = ratings.submit_feedback(self.swap.id, self.alice, 2)
        self.client.force_authenticate(user=self.bob)

        response = self.client.patch(f'/api/feedback/{feedback.id}/', {'rating': 5}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        feedback.refresh_from_db()
        self.assertEqual(feedback.rating, 2)

    def test_author_deletes_feedback(self):
        feedback = ratings.submit_feedback(self.swap.id, self.alice, 2)
        self.client.force_authenticate(user=self.alice)

        response = self.client.delete(f'/api/feedback/{feedback.id}/')

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.total_reviews, 0)
        self.assertEqual(self.bob.average_rating, Decimal('0.0'))


class FeedbackSummaryEndpointTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.alice = make_member('alice')
        self.bob = make_member('bob')
        self.dave = make_member('dave')

    def test_summary_is_public(self):
        ratings.submit_feedback(completed_swap(self.alice, self.bob).id, self.alice, 5)
        ratings.submit_feedback(completed_swap(self.dave, self.bob).id, self.dave, 4)

        response = self.client.get(f'/api/users/{self.bob.id}/feedback-summary/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user_id'], self.bob.id)
        self.assertEqual(response.data['total_reviews'], 2)
        self.assertEqual(response.data['average_rating'], Decimal('4.5'))
        self.assertEqual(response.data['rating_distribution'][5], 1)
        self.assertEqual(response.data['rating_distribution'][4], 1)

    def test_summary_unknown_user_returns_404(self):
        response = self.client.get('/api/users/999999/feedback-summary/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class UserFeedbackListEndpointTests(TestCase):
    """Test GET /api/users/<id>/feedback/."""

    def setUp(self):
        self.client = APIClient()
        self.alice = make_member('alice')
        self.bob = make_member('bob')
        self.dave = make_member('dave')
        self.erin = make_member('erin')
        self.staff = make_member('staff', is_staff=True)

        self.first = ratings.submit_feedback(
            completed_swap(self.alice, self.bob).id, self.alice, 5, comment='Great guitar lessons'
        )
        self.hidden = ratings.submit_feedback(
            completed_swap(self.dave, self.bob).id, self.dave, 4, is_public=False
        )
        self.flagged = ratings.submit_feedback(
            completed_swap(self.erin, self.bob).id, self.erin, 1, comment='Spam'
        )
        moderation.flag_feedback(self.flagged.id, 'Abusive')
        self.latest = ratings.submit_feedback(
            completed_swap(self.bob, self.alice).id, self.alice, 3
        )

    def test_lists_public_unflagged_feedback_newest_first(self):
        response = self.client.get(f'/api/users/{self.bob.id}/feedback/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        ids = [item['id'] for item in response.data['results']]
        self.assertEqual(ids, [self.latest.id, self.first.id])
        self.assertNotIn(self.hidden.id, ids)
        self.assertNotIn(self.flagged.id, ids)
        self.assertNotIn('email', response.data['results'][0]['reviewer'])

    def test_page_size(self):
        response = self.client.get(f'/api/users/{self.bob.id}/feedback/', {'page_size': 1})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(len(response.data['results']), 1)
        self.assertIsNotNone(response.data['next'])

    def test_private_profile_returns_403(self):
        User.objects.filter(pk=self.bob.pk).update(is_public=False)

        response = self.client.get(f'/api/users/{self.bob.id}/feedback/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.alice)
        response = self.client.get(f'/api/users/{self.bob.id}/feedback/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_private_profile_visible_to_owner_and_staff(self):
        User.objects.filter(pk=self.bob.pk).update(is_public=False)

        for viewer in (self.bob, self.staff):
            self.client.force_authenticate(user=viewer)
            response = self.client.get(f'/api/users/{self.bob.id}/feedback/')
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.data['count'], 2)

    def test_unknown_user_returns_404(self):
        response = self.client.get('/api/users/999999/feedback/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class AccountDeleteEndpointTests(TestCase):

    def test_delete_own_account(self):
        client = APIClient()
        alice = make_member('alice')
        bob = make_member('bob')
        ratings.submit_feedback(completed_swap(alice, bob).id, alice, 1)
        client.force_authenticate(user=alice)

        response = client.delete('/api/users/me/')

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(User.objects.filter(id=alice.id).exists())
        bob.refresh_from_db()
        self.assertEqual(bob.total_reviews, 0)


class AdminEndpointTests(TestCase):
    """Test the staff-only moderation endpoints."""

    def setUp(self):
        self.client = APIClient()
        self.admin = make_member('admin', is_staff=True)
        self.alice = make_member('alice', offered=['Guitar'])
        self.bob = make_member('bob', offered=['Spanish'])

    def test_non_staff_is_forbidden(self):
        self.client.force_authenticate(user=self.alice)

        response = self.client.post(f'/api/admin/users/{self.bob.id}/ban/', {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.status, User.Status.ACTIVE)

    def test_ban_and_unban(self):
        swap = swaps.create_request(self.alice, self.bob.id, 'Guitar', 'Spanish')
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(
            f'/api/admin/users/{self.alice.id}/ban/', {'reason': 'Spam'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'banned')
        self.assertFalse(response.data['is_active'])
        swap.refresh_from_db()
        self.assertEqual(swap.status, SwapStatus.CANCELLED)

        response = self.client.post(f'/api/admin/users/{self.alice.id}/unban/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'active')

    def test_banning_staff_returns_403(self):
        other_admin = make_member('other_admin', is_staff=True)
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(f'/api/admin/users/{other_admin.id}/ban/', {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_flag_and_unflag_feedback(self):
        feedback = ratings.submit_feedback(completed_swap(self.alice, self.bob).id, self.alice, 1)
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(
            f'/api/admin/feedback/{feedback.id}/flag/', {'reason': 'Abusive'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['flagged'])
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.total_reviews, 0)

        response = self.client.post(f'/api/admin/feedback/{feedback.id}/unflag/', {}, format='json')
        self.assertFalse(response.data['flagged'])
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.total_reviews, 1)

    def test_force_cancel_and_flag_swap(self):
        swap = swaps.create_request(self.alice, self.bob.id, 'Guitar', 'Spanish')
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(f'/api/admin/swaps/{swap.id}/flag/', {'reason': 'Odd'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['flagged'])
        self.assertEqual(response.data['status'], 'pending')

        response = self.client.post(f'/api/admin/swaps/{swap.id}/cancel/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')
        self.assertEqual(response.data['cancellation_reason'], 'Cancelled by admin')

    def test_force_cancel_completed_swap_returns_400(self):
        swap = completed_swap(self.alice, self.bob)
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(f'/api/admin/swaps/{swap.id}/cancel/', {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_platform_stats(self):
        swaps.create_request(self.alice, self.bob.id, 'Guitar', 'Spanish')
        self.client.force_authenticate(user=self.admin)

        response = self.client.get('/api/admin/stats/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['users']['total'], 3)
        self.assertEqual(response.data['swaps']['pending'], 1)
