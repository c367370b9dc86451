"""Real estate administration backend: listings, visit scheduling and notifications."""

__version__ = "1.0.0"
