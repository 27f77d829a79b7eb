"""
Tasklane shared schemas

Pydantic request/response models and role enums shared between the Tasklane
server and its API clients.
"""

__version__ = "0.1.0"
