"""
Coaching App - client management for personal trainers.

This package contains the complete application:
- core: Framework-agnostic client records, repository and accounts
- infrastructure: Identity provider and document store integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
