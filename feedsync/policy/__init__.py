"""
Update decision policy for feedsync.
"""

from .updates import UpdateDecision, decide_update

__all__ = ["UpdateDecision", "decide_update"]
