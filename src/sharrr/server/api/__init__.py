"""REST API routes for the sharrr server."""
