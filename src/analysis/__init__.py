"""Consistency checks and publish decisions."""
