"""Cross-cutting primitives: error taxonomy and clock."""
