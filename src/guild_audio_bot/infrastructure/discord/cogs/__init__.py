"""Discord cogs - command handlers and event listeners."""
