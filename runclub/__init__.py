"""runclub: challenge tracking, leaderboards and analytics for a running club."""

__version__ = "0.1.0"
