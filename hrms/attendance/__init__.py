"""Attendance module — clock in/out, breaks, admin records."""
