"""sharrr - End-to-end encrypted, chunked file sharing."""

__version__ = "0.1.0"
