"""
Tasklane API Server

Multi-tenant task management backend. Users belong to organizations,
organizations contain projects, and every protected request passes through
the token and membership checks in ``tasklane.core``.
"""

__version__ = "0.1.0"
