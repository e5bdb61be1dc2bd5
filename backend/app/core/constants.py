"""Application-wide constants for the coaching platform."""

from __future__ import annotations

# Brand Configuration
BRAND_NAME = "CoachBook"

# API Documentation
API_TITLE = f"{BRAND_NAME} API"
API_DESCRIPTION = f"Backend API for {BRAND_NAME} - coaches publish sessions, students book them"
API_VERSION = "1.0.0"

# Error messages
ERROR_INVALID_TIME_RANGE = "End time must be after start time"
ERROR_SESSION_NOT_FOUND = "Session not found"
ERROR_BOOKING_NOT_FOUND = "Booking not found"
ERROR_COACH_NOT_FOUND = "Coach not found"
ERROR_CONFIRMED_BOOKINGS = "Cannot delete a session with confirmed bookings"
ERROR_USER_NOT_FOUND = "User not found"
ERROR_NO_PROFILE_CHANGES = "No changes provided"
