"""HomeMate web API."""
