"""Mocks for testing."""
