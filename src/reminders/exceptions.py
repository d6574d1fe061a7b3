"""Exceptions raised by the reminder engine."""


class ReminderError(Exception):
    """Base exception for reminder engine errors."""


class ReminderValidationError(ReminderError):
    """Raised when reminder input is missing or malformed."""


class ReminderNotFoundError(ReminderError):
    """Raised when a reminder does not exist."""

    def __init__(self, reminder_id: object) -> None:
        """Initialise ReminderNotFoundError.

        :param reminder_id: The ID that was looked up.
        """
        self.reminder_id = reminder_id
        super().__init__(f"Reminder not found: {reminder_id}")


class InvalidTransitionError(ReminderError):
    """Raised when a status change is not allowed by the reminder lifecycle."""

    def __init__(self, current: str, target: str) -> None:
        """Initialise InvalidTransitionError.

        :param current: Current status.
        :param target: Requested status.
        """
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition reminder from {current} to {target}")


class PersistenceError(ReminderError):
    """Raised when the store or recipient lookup fails while processing a reminder."""


class ReminderAccessError(ReminderError):
    """Raised when a parent asks for a reminder they do not own."""

    def __init__(self, reminder_id: object, parent_id: str) -> None:
        """Initialise ReminderAccessError.

        :param reminder_id: The reminder ID.
        :param parent_id: The parent who asked for it.
        """
        self.reminder_id = reminder_id
        self.parent_id = parent_id
        super().__init__(f"Reminder {reminder_id} does not belong to parent {parent_id}")
