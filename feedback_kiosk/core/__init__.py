"""Core primitives: clock, logging and events."""
