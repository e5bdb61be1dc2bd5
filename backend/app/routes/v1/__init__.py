# backend/app/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import bookings, credits, health, profile, prometheus, sessions, subscriptions, users

__all__ = [
    "bookings",
    "credits",
    "health",
    "profile",
    "prometheus",
    "sessions",
    "subscriptions",
    "users",
]
