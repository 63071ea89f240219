"""
Core business logic for client coaching.

This module is framework-agnostic - it doesn't import FastAPI or any
storage backend. Collaborators are described as Protocols and injected,
so the client logic can be tested in isolation.
"""
