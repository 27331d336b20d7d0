"""mailspine command-line interface (``mailspine`` entry point)."""
