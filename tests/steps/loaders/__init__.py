"""Test loaders."""
