"""Session and tracked-site stores."""
