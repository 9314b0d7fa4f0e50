"""Compare the result sets of two SQL scripts run against one database."""

__version__ = "1.0.0"
