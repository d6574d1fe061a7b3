"""Tests for reminder database operations."""

import unittest
from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import MagicMock, patch
from uuid import uuid4

from src.database.reminders.models import Reminder, ReminderStatus
from src.database.reminders.operations import (
    ReminderFilters,
    as_utc,
    build_dedupe_key,
    claim_reminder,
    create_reminder,
    defer_reminder,
    delete_older_than,
    dismiss,
    get_for_baby_in_range,
    get_for_parent,
    get_pending_due,
    get_recently_sent,
    release_claim,
    reminder_exists,
    update_status,
)
from testing.reminders.fixtures import NOW, make_reminder


class TestBuildDedupeKey(unittest.TestCase):
    """Tests for build_dedupe_key."""

    def test_ignores_case_and_whitespace_in_medicine_name(self) -> None:
        """Test that differently formatted names produce the same key."""
        key_a = build_dedupe_key("baby-1", "Amoxicillin", NOW)
        key_b = build_dedupe_key("baby-1", "  amoxicillin ", NOW)

        self.assertEqual(key_a, key_b)

    def test_normalises_timezone(self) -> None:
        """Test that the same instant in different timezones produces the same key."""
        ist = timezone(timedelta(hours=5, minutes=30))

        key_utc = build_dedupe_key("baby-1", "Amoxicillin", NOW)
        key_ist = build_dedupe_key("baby-1", "Amoxicillin", NOW.astimezone(ist))

        self.assertEqual(key_utc, key_ist)

    def test_differs_per_baby(self) -> None:
        """Test that babies get distinct keys for the same dose."""
        self.assertNotEqual(
            build_dedupe_key("baby-1", "Amoxicillin", NOW),
            build_dedupe_key("baby-2", "Amoxicillin", NOW),
        )


class TestAsUtc(unittest.TestCase):
    """Tests for as_utc."""

    def test_treats_naive_as_utc(self) -> None:
        """Test that naive datetimes are assumed to be UTC."""
        result = as_utc(datetime(2026, 3, 10, 9, 0))

        self.assertEqual(result, NOW)
        self.assertEqual(result.tzinfo, UTC)


class TestCreateReminder(unittest.TestCase):
    """Tests for create_reminder operation."""

    def test_creates_pending_reminder(self) -> None:
        """Test creating a reminder sets all lifecycle fields."""
        mock_session = MagicMock()
        scheduled_for = NOW + timedelta(hours=5)

        reminder = create_reminder(
            mock_session,
            baby_id="baby-1",
            parent_id="parent-1",
            medicine_name="Amoxicillin",
            dosage="5ml",
            frequency="4 times daily",
            dose_time="14:00",
            scheduled_for=scheduled_for,
            channels=["push", "sms"],
            now=NOW,
        )

        self.assertEqual(reminder.status, ReminderStatus.PENDING.value)
        self.assertEqual(reminder.attempt_count, 0)
        self.assertEqual(reminder.retry_count, 0)
        self.assertEqual(reminder.channels, ["push", "sms"])
        self.assertEqual(reminder.scheduled_for, scheduled_for)
        self.assertEqual(
            reminder.dedupe_key, build_dedupe_key("baby-1", "Amoxicillin", scheduled_for)
        )
        self.assertIsNotNone(reminder.id)
        mock_session.add.assert_called_once_with(reminder)
        mock_session.flush.assert_called_once()


class TestReminderExists(unittest.TestCase):
    """Tests for reminder_exists operation."""

    def test_returns_true_when_found(self) -> None:
        """Test that an existing dedupe key is detected."""
        mock_session = MagicMock()
        mock_session.query.return_value.filter.return_value.first.return_value = make_reminder()

        self.assertTrue(reminder_exists(mock_session, "baby-1", "Amoxicillin", NOW))

    def test_returns_false_when_missing(self) -> None:
        """Test that a missing dedupe key is reported."""
        mock_session = MagicMock()
        mock_session.query.return_value.filter.return_value.first.return_value = None

        self.assertFalse(reminder_exists(mock_session, "baby-1", "Amoxicillin", NOW))


def _mock_limited_query(session: MagicMock, rows: list[Reminder]) -> None:
    query = session.query.return_value.filter.return_value
    query.limit.return_value.all.return_value = rows
    query.order_by.return_value.limit.return_value.all.return_value = rows


class TestGetPendingDue(unittest.TestCase):
    """Tests for get_pending_due operation."""

    def test_returns_only_due_reminders_oldest_first(self) -> None:
        """Test that future reminders are excluded and results are sorted."""
        mock_session = MagicMock()
        later = make_reminder(scheduled_for=NOW - timedelta(minutes=1))
        earlier = make_reminder(scheduled_for=NOW - timedelta(hours=1))
        exactly_now = make_reminder(scheduled_for=NOW)
        future = make_reminder(scheduled_for=NOW + timedelta(minutes=1))
        _mock_limited_query(mock_session, [later, future, exactly_now, earlier])

        result = get_pending_due(mock_session, now=NOW)

        self.assertEqual(result, [earlier, later, exactly_now])

    def test_excludes_reminders_waiting_out_backoff(self) -> None:
        """Test that deferred reminders are not due until next_attempt_at."""
        mock_session = MagicMock()
        deferred = make_reminder(next_attempt_at=NOW + timedelta(minutes=2))
        retry_ready = make_reminder(next_attempt_at=NOW - timedelta(seconds=1))
        _mock_limited_query(mock_session, [deferred, retry_ready])

        result = get_pending_due(mock_session, now=NOW)

        self.assertEqual(result, [retry_ready])

    def test_excludes_live_claims_but_not_expired_ones(self) -> None:
        """Test that only reminders with a live claim are hidden."""
        mock_session = MagicMock()
        live = make_reminder(claim_token="a", claimed_at=NOW - timedelta(minutes=1))
        expired = make_reminder(claim_token="b", claimed_at=NOW - timedelta(minutes=10))
        _mock_limited_query(mock_session, [live, expired])

        result = get_pending_due(mock_session, now=NOW, claim_lease=timedelta(minutes=5))

        self.assertEqual(result, [expired])

    def test_respects_limit(self) -> None:
        """Test that at most ``limit`` reminders are returned."""
        mock_session = MagicMock()
        rows = [make_reminder(scheduled_for=NOW - timedelta(minutes=i)) for i in range(5)]
        _mock_limited_query(mock_session, rows)

        result = get_pending_due(mock_session, now=NOW, limit=2)

        self.assertEqual(len(result), 2)
        self.assertEqual(result[0].scheduled_for, NOW - timedelta(minutes=4))


class TestGetForBabyInRange(unittest.TestCase):
    """Tests for get_for_baby_in_range operation."""

    def test_filters_half_open_range(self) -> None:
        """Test that start is inclusive and end is exclusive."""
        mock_session = MagicMock()
        start = NOW
        end = NOW + timedelta(days=1)
        at_start = make_reminder(scheduled_for=start)
        inside = make_reminder(scheduled_for=start + timedelta(hours=3))
        at_end = make_reminder(scheduled_for=end)
        before = make_reminder(scheduled_for=start - timedelta(seconds=1))
        _mock_limited_query(mock_session, [inside, at_end, before, at_start])

        result = get_for_baby_in_range(mock_session, "baby-1", start, end)

        self.assertEqual(result, [at_start, inside])


class TestGetForParent(unittest.TestCase):
    """Tests for get_for_parent operation."""

    def setUp(self) -> None:
        """Set up reminders across statuses and days."""
        self.old_sent = make_reminder(
            scheduled_for=NOW - timedelta(days=3), status=ReminderStatus.SENT.value
        )
        self.recent_sent = make_reminder(
            scheduled_for=NOW - timedelta(hours=1), status=ReminderStatus.SENT.value
        )
        self.pending = make_reminder(scheduled_for=NOW + timedelta(hours=2))
        self.session = MagicMock()
        _mock_limited_query(self.session, [self.old_sent, self.pending, self.recent_sent])

    def test_returns_newest_first_without_filters(self) -> None:
        """Test default ordering."""
        result = get_for_parent(self.session, "parent-1")

        self.assertEqual(result, [self.pending, self.recent_sent, self.old_sent])

    def test_filters_by_status(self) -> None:
        """Test status filter."""
        result = get_for_parent(
            self.session, "parent-1", ReminderFilters(status=ReminderStatus.SENT)
        )

        self.assertEqual(result, [self.recent_sent, self.old_sent])

    def test_filters_by_date_range(self) -> None:
        """Test inclusive start and end date filters."""
        filters = ReminderFilters(
            start_date=NOW - timedelta(days=1),
            end_date=NOW,
        )

        result = get_for_parent(self.session, "parent-1", filters)

        self.assertEqual(result, [self.recent_sent])


class TestGetRecentlySent(unittest.TestCase):
    """Tests for get_recently_sent operation."""

    def test_keeps_sent_reminders_updated_since_cutoff(self) -> None:
        """Test the status and updated_at filters and newest-first order."""
        older = make_reminder(
            status=ReminderStatus.SENT.value, updated_at=NOW - timedelta(minutes=4)
        )
        newer = make_reminder(
            status=ReminderStatus.SENT.value, updated_at=NOW - timedelta(minutes=1)
        )
        stale = make_reminder(
            status=ReminderStatus.SENT.value, updated_at=NOW - timedelta(minutes=6)
        )
        failed = make_reminder(status=ReminderStatus.FAILED.value, updated_at=NOW)
        session = MagicMock()
        _mock_limited_query(session, [older, stale, failed, newer])

        result = get_recently_sent(session, "baby-1", since=NOW - timedelta(minutes=5))

        self.assertEqual(result, [newer, older])


class TestClaimReminder(unittest.TestCase):
    """Tests for claim_reminder operation."""

    @patch("src.database.reminders.operations.get_reminder_by_id")
    def test_claims_unclaimed_pending_reminder(self, mock_get: MagicMock) -> None:
        """Test that a conditional update claiming one row wins the claim."""
        reminder = make_reminder()
        mock_get.return_value = reminder
        mock_session = MagicMock()
        mock_session.query.return_value.filter.return_value.update.return_value = 1

        result = claim_reminder(mock_session, reminder.id, "token-1", now=NOW)

        self.assertTrue(result)
        mock_session.query.return_value.filter.return_value.update.assert_called_once()

    @patch("src.database.reminders.operations.get_reminder_by_id")
    def test_loses_race_when_no_row_updated(self, mock_get: MagicMock) -> None:
        """Test that a concurrent claim makes this caller lose."""
        reminder = make_reminder()
        mock_get.return_value = reminder
        mock_session = MagicMock()
        mock_session.query.return_value.filter.return_value.update.return_value = 0

        self.assertFalse(claim_reminder(mock_session, reminder.id, "token-1", now=NOW))

    @patch("src.database.reminders.operations.get_reminder_by_id")
    def test_refuses_live_claim(self, mock_get: MagicMock) -> None:
        """Test that a reminder under a live claim is not claimed again."""
        reminder = make_reminder(claim_token="other", claimed_at=NOW - timedelta(seconds=30))
        mock_get.return_value = reminder
        mock_session = MagicMock()

        self.assertFalse(claim_reminder(mock_session, reminder.id, "token-1", now=NOW))
        mock_session.query.return_value.filter.return_value.update.assert_not_called()

    @patch("src.database.reminders.operations.get_reminder_by_id")
    def test_refuses_non_pending(self, mock_get: MagicMock) -> None:
        """Test that dismissed reminders cannot be claimed."""
        reminder = make_reminder(status=ReminderStatus.DISMISSED.value)
        mock_get.return_value = reminder

        self.assertFalse(claim_reminder(MagicMock(), reminder.id, "token-1", now=NOW))

    @patch("src.database.reminders.operations.get_reminder_by_id")
    def test_takes_over_expired_claim(self, mock_get: MagicMock) -> None:
        """Test that a lapsed claim can be taken over."""
        reminder = make_reminder(claim_token="crashed", claimed_at=NOW - timedelta(hours=1))
        mock_get.return_value = reminder
        mock_session = MagicMock()
        mock_session.query.return_value.filter.return_value.update.return_value = 1

        self.assertTrue(claim_reminder(mock_session, reminder.id, "token-1", now=NOW))


class TestReleaseAndDefer(unittest.TestCase):
    """Tests for release_claim and defer_reminder operations."""

    def test_release_claim_reports_success(self) -> None:
        """Test releasing a held claim."""
        mock_session = MagicMock()
        mock_session.query.return_value.filter.return_value.update.return_value = 1

        self.assertTrue(release_claim(mock_session, uuid4(), "token-1"))

    def test_defer_reminder_increments_retry_count_only(self) -> None:
        """Test that deferral moves retry_count and leaves attempt_count alone."""
        mock_session = MagicMock()
        mock_update = mock_session.query.return_value.filter.return_value.update
        mock_update.return_value = 1
        next_attempt_at = NOW + timedelta(minutes=1)

        result = defer_reminder(
            mock_session, uuid4(), "token-1", next_attempt_at, "db down", now=NOW
        )

        self.assertTrue(result)
        values = mock_update.call_args[0][0]
        self.assertIn(Reminder.retry_count, values)
        self.assertNotIn(Reminder.attempt_count, values)
        self.assertEqual(values[Reminder.next_attempt_at], next_attempt_at)
        self.assertIsNone(values[Reminder.claim_token])


class TestUpdateStatus(unittest.TestCase):
    """Tests for update_status operation."""

    @patch("src.database.reminders.operations.get_reminder_by_id")
    def test_applies_update_and_counts_attempt(self, mock_get: MagicMock) -> None:
        """Test a successful conditional status write."""
        reminder = make_reminder(status=ReminderStatus.SENT.value, attempt_count=1)
        mock_get.return_value = reminder
        mock_session = MagicMock()
        mock_update = mock_session.query.return_value.filter.return_value.update
        mock_update.return_value = 1

        result = update_status(
            mock_session,
            reminder.id,
            ReminderStatus.SENT,
            attempt_delta=1,
            expected_statuses=[ReminderStatus.PENDING],
            claim_token="token-1",
            now=NOW,
        )

        self.assertIs(result, reminder)
        values = mock_update.call_args[0][0]
        self.assertEqual(values[Reminder.status], "sent")
        self.assertIn(Reminder.attempt_count, values)
        self.assertEqual(values[Reminder.last_attempt_at], NOW)
        self.assertIsNone(values[Reminder.error_message])
        mock_session.refresh.assert_called_once_with(reminder)

    def test_does_not_count_attempt_without_delta(self) -> None:
        """Test that attempt_count is untouched when attempt_delta is zero."""
        mock_session = MagicMock()
        mock_update = mock_session.query.return_value.filter.return_value.update
        mock_update.return_value = 1

        update_status(mock_session, uuid4(), ReminderStatus.FAILED, error_message="x", now=NOW)

        values = mock_update.call_args[0][0]
        self.assertNotIn(Reminder.attempt_count, values)
        self.assertNotIn(Reminder.last_attempt_at, values)

    def test_returns_none_when_condition_fails(self) -> None:
        """Test that a write against a changed reminder is not applied."""
        mock_session = MagicMock()
        mock_session.query.return_value.filter.return_value.update.return_value = 0

        result = update_status(
            mock_session,
            uuid4(),
            ReminderStatus.SENT,
            attempt_delta=1,
            expected_statuses=[ReminderStatus.PENDING],
            claim_token="token-1",
        )

        self.assertIsNone(result)
        mock_session.refresh.assert_not_called()


class TestDismiss(unittest.TestCase):
    """Tests for dismiss operation."""

    @patch("src.database.reminders.operations.get_reminder_by_id")
    def test_dismisses_sent_reminder(self, mock_get: MagicMock) -> None:
        """Test that a sent reminder becomes dismissed without touching attempts."""
        reminder = make_reminder(
            status=ReminderStatus.SENT.value,
            attempt_count=1,
            error_message=None,
        )
        mock_get.return_value = reminder

        result = dismiss(MagicMock(), reminder.id, now=NOW + timedelta(minutes=5))

        self.assertEqual(result.status, ReminderStatus.DISMISSED.value)
        self.assertEqual(result.attempt_count, 1)
        self.assertEqual(result.updated_at, NOW + timedelta(minutes=5))

    @patch("src.database.reminders.operations.get_reminder_by_id")
    def test_dismissing_twice_is_a_no_op(self, mock_get: MagicMock) -> None:
        """Test that an already dismissed reminder is returned unchanged."""
        reminder = make_reminder(status=ReminderStatus.DISMISSED.value)
        mock_get.return_value = reminder
        mock_session = MagicMock()

        result = dismiss(mock_session, reminder.id, now=NOW + timedelta(days=1))

        self.assertIs(result, reminder)
        self.assertEqual(result.updated_at, NOW)
        mock_session.flush.assert_not_called()

    @patch("src.database.reminders.operations.get_reminder_by_id")
    def test_returns_none_when_missing(self, mock_get: MagicMock) -> None:
        """Test dismissing an unknown reminder."""
        mock_get.return_value = None

        self.assertIsNone(dismiss(MagicMock(), uuid4()))


class TestDeleteOlderThan(unittest.TestCase):
    """Tests for delete_older_than operation."""

    def _mock_candidates(self, session: MagicMock, rows: list[Reminder]) -> None:
        query = session.query.return_value.filter.return_value
        query.order_by.return_value.limit.return_value.all.return_value = rows

    def test_deletes_only_terminal_reminders_before_cutoff(self) -> None:
        """Test that a 10-day-old sent reminder goes and a recent one stays."""
        mock_session = MagicMock()
        cutoff = NOW - timedelta(days=7)
        old_sent = make_reminder(
            status=ReminderStatus.SENT.value, updated_at=NOW - timedelta(days=10)
        )
        recent_failed = make_reminder(
            status=ReminderStatus.FAILED.value, updated_at=NOW - timedelta(days=2)
        )
        self._mock_candidates(mock_session, [old_sent, recent_failed])

        deleted = delete_older_than(mock_session, cutoff)

        self.assertEqual(deleted, 1)
        mock_session.delete.assert_called_once_with(old_sent)

    def test_never_deletes_pending_when_terminal_only(self) -> None:
        """Test that a pending reminder slipping into the batch is kept."""
        mock_session = MagicMock()
        old_pending = make_reminder(updated_at=NOW - timedelta(days=30))
        self._mock_candidates(mock_session, [old_pending])

        deleted = delete_older_than(mock_session, NOW - timedelta(days=7))

        self.assertEqual(deleted, 0)
        mock_session.delete.assert_not_called()


if __name__ == "__main__":
    unittest.main()
