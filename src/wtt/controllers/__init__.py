"""Controllers coordinating services for the command line."""
