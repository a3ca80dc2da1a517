"""Credential extraction, access tokens and session resolution."""
