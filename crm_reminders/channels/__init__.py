"""Presentation channels a reminder fans out to."""
