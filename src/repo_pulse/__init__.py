"""repo-pulse: repository health scoring, trends and reports."""

__version__ = "0.3.0"
