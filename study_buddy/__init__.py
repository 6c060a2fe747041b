"""Study Buddy - lecture recording sessions with dual cloud upload."""

__version__ = "0.1.0"
