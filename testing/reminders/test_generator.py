"""Tests for reminder generation."""

import unittest
from datetime import UTC, datetime, time, timedelta
from unittest.mock import MagicMock, patch
from uuid import uuid4
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError

from src.reminders.config import ReminderConfig
from src.reminders.exceptions import ReminderValidationError
from src.reminders.generator import dose_occurrences, generate_reminders, parse_dose_time
from src.reminders.models import MedicineDescriptor

KOLKATA = ZoneInfo("Asia/Kolkata")

# 09:00 in Kolkata
GENERATED_AT = datetime(2026, 3, 10, 9, 0, tzinfo=KOLKATA).astimezone(UTC)


def _settings(**overrides: object) -> ReminderConfig:
    values: dict[str, object] = {"timezone": "Asia/Kolkata"}
    values.update(overrides)
    return ReminderConfig(_env_file=None, **values)  # type: ignore[arg-type]


def _created(session: object, **kwargs: object) -> MagicMock:
    return MagicMock(id=uuid4(), scheduled_for=kwargs["scheduled_for"])


class TestParseDoseTime(unittest.TestCase):
    """Tests for parse_dose_time."""

    def test_parses_valid_times(self) -> None:
        """Test padded and unpadded hours."""
        self.assertEqual(parse_dose_time("08:00"), time(8, 0))
        self.assertEqual(parse_dose_time("8:05"), time(8, 5))
        self.assertEqual(parse_dose_time("23:59"), time(23, 59))

    def test_rejects_malformed_times(self) -> None:
        """Test that invalid strings raise a validation error."""
        for value in ("24:00", "12:60", "noon", "", "8", "08:00:00"):
            with self.subTest(value=value), self.assertRaises(ReminderValidationError):
                parse_dose_time(value)


class TestDoseOccurrences(unittest.TestCase):
    """Tests for dose_occurrences."""

    def test_future_time_today(self) -> None:
        """Test a dose time still ahead today."""
        result = dose_occurrences(time(14, 0), GENERATED_AT, timedelta(hours=24), KOLKATA)

        self.assertEqual(result, [datetime(2026, 3, 10, 14, 0, tzinfo=KOLKATA)])

    def test_past_time_rolls_to_tomorrow(self) -> None:
        """Test a dose time already passed today."""
        result = dose_occurrences(time(8, 0), GENERATED_AT, timedelta(hours=24), KOLKATA)

        self.assertEqual(result, [datetime(2026, 3, 11, 8, 0, tzinfo=KOLKATA)])

    def test_current_time_is_not_included_today(self) -> None:
        """Test that an occurrence exactly at now rolls to the end of the window."""
        result = dose_occurrences(time(9, 0), GENERATED_AT, timedelta(hours=24), KOLKATA)

        self.assertEqual(result, [datetime(2026, 3, 11, 9, 0, tzinfo=KOLKATA)])

    def test_longer_window_yields_one_per_day(self) -> None:
        """Test a 48 hour window."""
        result = dose_occurrences(time(14, 0), GENERATED_AT, timedelta(hours=48), KOLKATA)

        self.assertEqual(len(result), 2)
        self.assertTrue(all(r.tzinfo == UTC for r in result))


class TestGenerateReminders(unittest.TestCase):
    """Tests for generate_reminders."""

    def setUp(self) -> None:
        """Set up the medicine and settings."""
        self.settings = _settings()
        self.medicine = MedicineDescriptor(
            name="Amoxicillin",
            dosage="5ml",
            frequency="4 times daily",
            dose_schedule=["08:00", "14:00", "20:00", "02:00"],
        )

    @patch("src.reminders.generator.create_reminder", side_effect=_created)
    @patch("src.reminders.generator.reminder_exists", return_value=False)
    def test_generates_one_reminder_per_dose_time(
        self,
        mock_exists: MagicMock,
        mock_create: MagicMock,
    ) -> None:
        """Test the four-dose schedule generated at 09:00 local time."""
        result = generate_reminders(
            MagicMock(),
            self.medicine,
            "baby-1",
            "parent-1",
            now=GENERATED_AT,
            settings=self.settings,
        )

        self.assertEqual(result.created, 4)
        self.assertEqual(result.duplicates_skipped, 0)
        local = sorted(s.astimezone(KOLKATA) for s in result.scheduled_for)
        self.assertEqual(
            local,
            [
                datetime(2026, 3, 10, 14, 0, tzinfo=KOLKATA),
                datetime(2026, 3, 10, 20, 0, tzinfo=KOLKATA),
                datetime(2026, 3, 11, 2, 0, tzinfo=KOLKATA),
                datetime(2026, 3, 11, 8, 0, tzinfo=KOLKATA),
            ],
        )
        kwargs = mock_create.call_args_list[0][1]
        self.assertEqual(kwargs["channels"], ["push", "sms"])
        self.assertEqual(kwargs["dose_time"], "08:00")
        self.assertEqual(kwargs["baby_id"], "baby-1")

    @patch("src.reminders.generator.create_reminder")
    @patch("src.reminders.generator.reminder_exists", return_value=True)
    def test_rerun_creates_no_duplicates(
        self,
        mock_exists: MagicMock,
        mock_create: MagicMock,
    ) -> None:
        """Test that existing occurrences are skipped, not errors."""
        result = generate_reminders(
            MagicMock(),
            self.medicine,
            "baby-1",
            "parent-1",
            now=GENERATED_AT,
            settings=self.settings,
        )

        self.assertEqual(result.created, 0)
        self.assertEqual(result.duplicates_skipped, 4)
        mock_create.assert_not_called()

    @patch("src.reminders.generator.create_reminder")
    @patch("src.reminders.generator.reminder_exists", return_value=False)
    def test_concurrent_insert_counts_as_duplicate(
        self,
        mock_exists: MagicMock,
        mock_create: MagicMock,
    ) -> None:
        """Test that a unique-constraint violation is treated as a duplicate."""
        mock_create.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))
        medicine = MedicineDescriptor(name="Paracetamol", dose_schedule=["14:00"])

        result = generate_reminders(
            MagicMock(), medicine, "baby-1", "parent-1", now=GENERATED_AT, settings=self.settings
        )

        self.assertEqual(result.created, 0)
        self.assertEqual(result.duplicates_skipped, 1)

    @patch("src.reminders.generator.create_reminder", side_effect=_created)
    @patch("src.reminders.generator.reminder_exists", return_value=False)
    def test_empty_schedule_uses_suggested_start_time(
        self,
        mock_exists: MagicMock,
        mock_create: MagicMock,
    ) -> None:
        """Test the suggested start time fallback."""
        medicine = MedicineDescriptor(name="Iron drops", suggested_start_time="18:30")

        result = generate_reminders(
            MagicMock(), medicine, "baby-1", "parent-1", now=GENERATED_AT, settings=self.settings
        )

        self.assertEqual(result.created, 1)
        self.assertEqual(mock_create.call_args[1]["dose_time"], "18:30")

    @patch("src.reminders.generator.create_reminder", side_effect=_created)
    @patch("src.reminders.generator.reminder_exists", return_value=False)
    def test_empty_schedule_defaults_to_eight_am(
        self,
        mock_exists: MagicMock,
        mock_create: MagicMock,
    ) -> None:
        """Test the 08:00 fallback."""
        medicine = MedicineDescriptor(name="Vitamin D")

        generate_reminders(
            MagicMock(), medicine, "baby-1", "parent-1", now=GENERATED_AT, settings=self.settings
        )

        self.assertEqual(mock_create.call_args[1]["dose_time"], "08:00")

    @patch("src.reminders.generator.create_reminder", side_effect=_created)
    @patch("src.reminders.generator.reminder_exists", return_value=False)
    def test_explicit_channels_override_defaults(
        self,
        mock_exists: MagicMock,
        mock_create: MagicMock,
    ) -> None:
        """Test that per-prescription channels are used."""
        medicine = MedicineDescriptor(name="Vitamin D", dose_schedule=["14:00"])

        generate_reminders(
            MagicMock(),
            medicine,
            "baby-1",
            "parent-1",
            channels=["whatsapp"],
            now=GENERATED_AT,
            settings=self.settings,
        )

        self.assertEqual(mock_create.call_args[1]["channels"], ["whatsapp"])

    @patch("src.reminders.generator.create_reminder")
    def test_missing_ids_fail_fast(self, mock_create: MagicMock) -> None:
        """Test that missing baby or parent IDs raise before any write."""
        for baby_id, parent_id in ((None, "parent-1"), ("baby-1", ""), ("  ", "parent-1")):
            with self.subTest(baby_id=baby_id, parent_id=parent_id):
                with self.assertRaises(ReminderValidationError):
                    generate_reminders(
                        MagicMock(),
                        self.medicine,
                        baby_id,
                        parent_id,
                        now=GENERATED_AT,
                        settings=self.settings,
                    )
        mock_create.assert_not_called()

    @patch("src.reminders.generator.create_reminder")
    @patch("src.reminders.generator.reminder_exists", return_value=False)
    def test_malformed_dose_time_writes_nothing(
        self,
        mock_exists: MagicMock,
        mock_create: MagicMock,
    ) -> None:
        """Test that one bad dose time aborts the whole medicine."""
        medicine = MedicineDescriptor(name="Amoxicillin", dose_schedule=["14:00", "25:00"])

        with self.assertRaises(ReminderValidationError):
            generate_reminders(
                MagicMock(),
                medicine,
                "baby-1",
                "parent-1",
                now=GENERATED_AT,
                settings=self.settings,
            )
        mock_create.assert_not_called()


if __name__ == "__main__":
    unittest.main()
