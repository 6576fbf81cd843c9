"""Command-line entry point (``myjantes``)."""
