"""Order backend endpoint modules (internal)."""
