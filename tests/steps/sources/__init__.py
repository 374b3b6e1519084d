"""Test sources."""
