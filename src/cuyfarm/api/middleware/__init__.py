"""API middleware: auth, request ids, timing and error responses."""
