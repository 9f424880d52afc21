"""Web application for casauth."""
