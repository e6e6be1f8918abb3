"""
Test suite for the moderation layer.

Moderation actions must go through the swap and rating engines: a ban
cancels only pending swaps, flagging feedback removes it from the reviewee's
rating, and completed swaps are never force-cancelled.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.utils import timezone

from exchange import moderation, ratings, swaps
from exchange.exceptions import Forbidden, IllegalState, IllegalTransition, NotFound, ProviderUnavailable
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


class BanUserTests(TestCase):
    """Test banning and unbanning members."""

    def setUp(self):
        self.alice = make_member('alice', offered=['Guitar'])
        self.bob = make_member('bob', offered=['Spanish'])
        self.carol = make_member('carol', offered=['Cooking'])
        self.admin = make_member('admin', is_staff=True)

    def test_ban_cancels_pending_swaps_only(self):
        pending_sent = swaps.create_request(self.alice, self.bob.id, 'Guitar', 'Spanish')
        pending_received = swaps.create_request(self.carol, self.alice.id, 'Cooking', 'Guitar')
        running = swaps.create_request(self.alice, self.bob.id, 'Guitar', 'French')
        self.bob.skills_offered = ['Spanish', 'French']
        self.bob.save()
        swaps.accept(running.id, self.bob)
        swaps.start(running.id, self.bob)

        moderation.ban_user(self.alice.id, 'Spam')

        pending_sent.refresh_from_db()
        pending_received.refresh_from_db()
        running.refresh_from_db()
        self.assertEqual(pending_sent.status, SwapStatus.CANCELLED)
        self.assertEqual(pending_sent.cancellation_reason, 'User banned')
        self.assertIsNone(pending_sent.cancelled_by)
        self.assertEqual(pending_received.status, SwapStatus.CANCELLED)
        self.assertEqual(running.status, SwapStatus.IN_PROGRESS)

    def test_ban_sets_moderation_state(self):
        user = moderation.ban_user(self.alice.id, 'Spam')

        self.assertEqual(user.status, User.Status.BANNED)
        self.assertFalse(user.is_active)
        self.assertEqual(user.ban_reason, 'Spam')
        self.assertIsNotNone(user.banned_at)

    def test_banned_user_cannot_receive_requests(self):
        moderation.ban_user(self.bob.id)

        self.alice.refresh_from_db()
        with self.assertRaises(ProviderUnavailable):
            swaps.create_request(self.alice, self.bob.id, 'Guitar', 'Spanish')

    @override_settings(SKILLSWAP={'BAN_CANCEL_REASON': 'Removed by moderators'})
    def test_cancel_reason_comes_from_settings(self):
        swap = swaps.create_request(self.alice, self.bob.id, 'Guitar', 'Spanish')

        moderation.ban_user(self.bob.id)

        swap.refresh_from_db()
        self.assertEqual(swap.cancellation_reason, 'Removed by moderators')

    def test_staff_cannot_be_banned(self):
        with self.assertRaises(Forbidden):
            moderation.ban_user(self.admin.id)

        self.admin.refresh_from_db()
        self.assertEqual(self.admin.status, User.Status.ACTIVE)
        self.assertTrue(self.admin.is_active)

    def test_ban_unknown_user(self):
        with self.assertRaises(NotFound):
            moderation.ban_user(555555)

    def test_unban_restores_access_but_not_swaps(self):
        swap = swaps.create_request(self.alice, self.bob.id, 'Guitar', 'Spanish')
        moderation.ban_user(self.alice.id, 'Spam')

        user = moderation.unban_user(self.alice.id)

        self.assertEqual(user.status, User.Status.ACTIVE)
        self.assertTrue(user.is_active)
        self.assertEqual(user.ban_reason, '')
        self.assertIsNone(user.banned_at)
        swap.refresh_from_db()
        self.assertEqual(swap.status, SwapStatus.CANCELLED)


class FeedbackModerationTests(TestCase):
    """Test flagging feedback out of (and back into) ratings."""

    def setUp(self):
        self.bob = make_member('bob')
        self.alice = make_member('alice')
        self.dave = make_member('dave')
        self.low = ratings.submit_feedback(completed_swap(self.alice, self.bob).id, self.alice, 1)
        self.high = ratings.submit_feedback(completed_swap(self.dave, self.bob).id, self.dave, 5)

    def test_flag_excludes_feedback_from_rating(self):
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.average_rating, Decimal('3.0'))

        feedback = moderation.flag_feedback(self.low.id, 'Retaliation')

        self.assertTrue(feedback.flagged)
        self.assertTrue(feedback.admin_reviewed)
        self.assertEqual(feedback.flag_reason, 'Retaliation')
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.average_rating, Decimal('5.0'))
        self.assertEqual(self.bob.total_reviews, 1)

    def test_unflag_restores_feedback(self):
        moderation.flag_feedback(self.low.id)

        moderation.unflag_feedback(self.low.id)

        self.bob.refresh_from_db()
        self.assertEqual(self.bob.average_rating, Decimal('3.0'))
        self.assertEqual(self.bob.total_reviews, 2)

    def test_flag_unknown_feedback(self):
        with self.assertRaises(NotFound):
            moderation.flag_feedback(777777)


class SwapModerationTests(TestCase):

    def setUp(self):
        self.alice = make_member('alice', offered=['Guitar'])
        self.bob = make_member('bob', offered=['Spanish'])

    def test_force_cancel_needs_no_participant(self):
        swap = swaps.create_request(self.alice, self.bob.id, 'Guitar', 'Spanish')
        swaps.accept(swap.id, self.bob)

        swap = moderation.force_cancel_swap(swap.id)

        self.assertEqual(swap.status, SwapStatus.CANCELLED)
        self.assertEqual(swap.cancellation_reason, 'Cancelled by admin')
        self.assertIsNone(swap.cancelled_by)

    def test_force_cancel_refuses_completed_swap(self):
        swap = completed_swap(self.alice, self.bob)

        with self.assertRaises(IllegalTransition):
            moderation.force_cancel_swap(swap.id, 'Dispute')

        swap.refresh_from_db()
        self.assertEqual(swap.status, SwapStatus.COMPLETED)

    def test_flag_swap_keeps_status(self):
        swap = swaps.create_request(self.alice, self.bob.id, 'Guitar', 'Spanish')

        swap = moderation.flag_swap(swap.id, 'Suspicious message')

        self.assertTrue(swap.flagged)
        self.assertEqual(swap.flag_reason, 'Suspicious message')
        self.assertEqual(swap.status, SwapStatus.PENDING)


class DeleteAccountTests(TestCase):
    """Test hard account deletion."""

    def setUp(self):
        self.alice = make_member('alice', offered=['Guitar'])
        self.bob = make_member('bob', offered=['Spanish'])
        self.dave = make_member('dave')

    def test_delete_account_recomputes_reviewees(self):
        ratings.submit_feedback(completed_swap(self.alice, self.bob).id, self.alice, 1)
        ratings.submit_feedback(completed_swap(self.dave, self.bob).id, self.dave, 5)

        moderation.delete_account(self.alice.id)

        self.assertFalse(User.objects.filter(id=self.alice.id).exists())
        self.assertEqual(Feedback.objects.filter(reviewer_id=self.alice.id).count(), 0)
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.average_rating, Decimal('5.0'))
        self.assertEqual(self.bob.total_reviews, 1)

    def test_delete_account_cancels_pending_and_keeps_history(self):
        pending = swaps.create_request(self.alice, self.bob.id, 'Guitar', 'Spanish')
        finished = completed_swap(self.alice, self.bob)

        moderation.delete_account(self.alice.id)

        pending.refresh_from_db()
        finished.refresh_from_db()
        self.assertEqual(pending.status, SwapStatus.CANCELLED)
        self.assertEqual(pending.cancellation_reason, 'Account deleted')
        self.assertIsNone(pending.requester_id)
        self.assertEqual(finished.status, SwapStatus.COMPLETED)
        self.assertIsNone(finished.requester_id)
        self.assertEqual(finished.provider_id, self.bob.id)

    def test_review_after_partner_deleted_is_refused(self):
        swap = completed_swap(self.alice, self.bob)
        moderation.delete_account(self.alice.id)

        with self.assertRaises(IllegalState):
            ratings.submit_feedback(swap.id, self.bob, 4)


class PlatformStatsTests(TestCase):

    def test_platform_stats(self):
        alice = make_member('alice', offered=['Guitar', 'Piano'])
        bob = make_member('bob', offered=['Guitar'])
        make_member('carol', offered=['Cooking'])
        moderation.ban_user(User.objects.get(username='carol').id)

        swaps.create_request(alice, bob.id, 'Piano', 'Guitar')
        swap = completed_swap(alice, bob)
        ratings.submit_feedback(swap.id, alice, 4)
        flagged = ratings.submit_feedback(swap.id, bob, 2)
        moderation.flag_feedback(flagged.id)

        stats = moderation.platform_stats()

        self.assertEqual(stats['users'], {'total': 3, 'active': 2, 'banned': 1})
        self.assertEqual(stats['swaps']['total'], 2)
        self.assertEqual(stats['swaps']['pending'], 1)
        self.assertEqual(stats['swaps']['completed'], 1)
        self.assertEqual(stats['feedback']['total'], 1)
        self.assertEqual(stats['feedback']['flagged'], 1)
        self.assertEqual(stats['feedback']['average_rating'], Decimal('4.0'))
        self.assertEqual(stats['popular_skills'][0], {'skill': 'Guitar', 'count': 2})
