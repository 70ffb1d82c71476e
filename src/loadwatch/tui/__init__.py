"""Terminal UI for loadwatch."""
