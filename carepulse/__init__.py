"""Core domain logic for personal health tracking.

This package contains the reminder engine and the streak/points state machine,
isolated from the data store and notification channels for easy testing and reasoning.
"""
