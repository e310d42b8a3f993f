"""Discord-backed implementations of application ports."""
