"""
Background Jobs for the Peer Feedback Engine.

This module contains scheduled jobs:
- cycle_cron: Ranking refresh, overdue marking and cycle closure
"""

from .cycle_cron import run_cycle_job, send_alert

__all__ = ["run_cycle_job", "send_alert"]
