"""LiftLog: workout and nutrition log with progressive-overload suggestions."""

__version__ = "1.0.0"
