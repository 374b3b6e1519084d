"""Step implementations used by the tests."""
