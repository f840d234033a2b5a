"""
Services module for Dentalogix Backend.

Contains business logic and external service integrations.
"""
