"""
connectors — OAuth connections to social platforms.

Provides a generic connector framework that handles:
  • OAuth2 auth-URL generation with signed, single-use state
  • Callback handling (code → token exchange → profile)
  • Per-user connection storage & refresh before expiry
  • AES-256-CBC encryption of tokens at rest
  • Disconnect (soft delete) and hard delete

Each platform (Facebook, Reddit, …) is a subclass of BaseConnector.
"""
