"""
Pydantic schemas for Dentalogix Backend.

Contains all API request/response schemas organized by module.
"""

from .quiz import *
from .responses import *
