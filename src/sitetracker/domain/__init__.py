"""Domain layer for the site tracker.

Contains pure logic: principals, host canonicalization, identifier
derivation and input validation. No infrastructure dependencies.
"""
