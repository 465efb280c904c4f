"""
auth — resolves the signed-in user for connection routes.

Provides:
  • signed session token creation & verification
  • ``get_current_user_id`` FastAPI dependency
"""
