"""Test transformers."""
