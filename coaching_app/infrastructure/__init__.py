"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- identity: Sign-in accounts (email + password)
- documents: Document storage with live subscriptions

These wrappers implement the Protocols declared in core.clients.accounts.
"""
