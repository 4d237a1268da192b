"""
Playbook - program editing and performance logging for a coach and roster.

This package contains the complete application:
- core: Framework-agnostic program, logging and analytics logic
- infrastructure: Persistent store and text-generation integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
