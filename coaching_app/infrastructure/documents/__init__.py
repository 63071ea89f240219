"""
Document store integration for client documents, progress feeds and
workout plans.
"""
