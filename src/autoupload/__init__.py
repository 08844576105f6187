"""autoupload - Event-based photo auto-upload agent."""

__version__ = "0.1.0"
