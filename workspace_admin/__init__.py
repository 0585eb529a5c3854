"""Workspace administration: invitations, onboarding and role reconciliation."""

__version__ = "0.1.0"
