"""EduTrack — multi-tenant school back office API."""

__version__ = "0.1.0"
