# ruff: noqa: F403, F401
"""Schemas package initialization."""

# Import all schemas to ensure they're registered
from .base import *
from .ai import *
from .auth import *
from .chat import *
from .user import *
