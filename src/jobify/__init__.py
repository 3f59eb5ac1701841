"""Conversational career assistant for students: onboarding, opportunity matching and CV analysis."""

__version__ = "0.1.0"
