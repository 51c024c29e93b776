"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Named constants for the WMS request and output names
- exceptions: Custom exception hierarchy
- ingress: Trigger payload parsing and error responses
"""
