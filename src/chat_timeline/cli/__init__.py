"""Command-line interface for chat-timeline."""
