"""
Workflow Orchestration
======================

High-level orchestration of a studio session.

Components:
- Studio: Commands, queries and notifications for the presentation layer
"""

from .orchestrator import Studio

__all__ = [
    "Studio",
]
