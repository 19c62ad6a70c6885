"""Timelines — incremental per-year archives of social and listening history."""
