"""Discord-facing layer: port adapters and cogs."""
