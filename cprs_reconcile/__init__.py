"""Template-driven checkbox reconciliation for CPRS reminder dialogs."""

__version__ = "0.1.0"
