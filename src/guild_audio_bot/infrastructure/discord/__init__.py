"""Discord integration: bot, cogs, and adapters."""
