"""Personal task manager: task lifecycle, reminders and undoable deletes."""

__version__ = "0.1.0"
