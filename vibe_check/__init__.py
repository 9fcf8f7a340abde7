"""
vibe-check - Workflow Health from Commit History

Local-first analysis engine for version-control history.
Segments commits into work sessions, detects debug spirals, rates workflow
health and turns recurring spirals into confidence-scored lessons.

Supports: git
"""

__version__ = "0.1.0"
