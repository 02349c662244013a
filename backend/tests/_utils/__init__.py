"""Shared helpers for backend tests."""
