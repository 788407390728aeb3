"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Bundle names, roles, permissions, vocabularies
- exceptions: Custom exception hierarchy
- ingress: HTTP request/response boundary helpers
"""
