"""Reminder engine: value types, evaluator, dispatcher and scheduler."""
