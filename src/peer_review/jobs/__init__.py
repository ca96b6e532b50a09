"""Scheduled background jobs."""

from .group_averages import register_scheduler

__all__ = ["register_scheduler"]
