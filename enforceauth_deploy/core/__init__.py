"""Core utilities and shared infrastructure.

- config: Action input loading and validation
- constants: Named constants and defaults
- context: GitHub Actions runtime context
- exceptions: Custom exception hierarchy
- idempotency: Deterministic deployment request keys
- oidc: OIDC token acquisition and exchange
- workflow: GitHub workflow commands (log rendering, outputs, masking)
"""
