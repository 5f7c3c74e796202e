"""Web application utilities."""
