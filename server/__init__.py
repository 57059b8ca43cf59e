"""HTTP service for Makamesco."""
