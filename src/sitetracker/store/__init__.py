"""Integrity classification and conflict-aware transactions."""
