"""sharrr reference server: URL broker, proxy upload and share metadata."""
