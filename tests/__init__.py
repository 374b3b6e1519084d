"""Tests for the ETL pipeline processor."""
