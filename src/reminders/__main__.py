"""Entry point for running the reminder scheduler as a module.

Allows running with: python -m src.reminders
"""

from src.reminders.runner import main

if __name__ == "__main__":
    main()
