"""Rock Paper Scissors WebSocket client."""

__version__ = "0.1.0"
