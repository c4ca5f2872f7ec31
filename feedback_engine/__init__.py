"""Peer collaboration ranking and feedback assignment engine."""
