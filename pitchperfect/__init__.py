"""PitchPerfect - AI mock interviews from a job description."""

__version__ = "1.0.0"
