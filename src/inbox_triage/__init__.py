"""Rule engine for automated webmail triage."""

__version__ = "0.1.0"
