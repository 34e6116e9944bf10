"""Task Organizer: personal task management over Firebase."""

__version__ = "0.1.0"
