"""
Infrastructure Layer

Adapters for the outside world:
- persistence/: SQLite document store and the session repository
- spotify/: HTTP client for the streaming provider
"""
