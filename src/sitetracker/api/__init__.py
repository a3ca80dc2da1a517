"""HTTP-facing adapters. Routes live in the hosting application."""
