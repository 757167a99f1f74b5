"""
auth — User authentication module.

Provides:
  • JWT session tokens + verification / reset purpose tokens
  • Password hashing (bcrypt)
  • Register / Login / Google sign-in / verification / reset API routes
  • ``get_current_user``, ``get_optional_user``, ``require_roles``,
    ``require_admin`` FastAPI dependencies
"""
