"""
auth — User authentication module.

Provides:
  • JWT session token creation & verification (``TokenCodec``)
  • Password hashing (bcrypt)
  • ``SessionService``: register / login / verify / profile lookup
  • Register / Login / Me API routes
  • ``get_current_user`` FastAPI dependency
"""
