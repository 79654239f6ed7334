"""
Core application modules.
Contains essential infrastructure components:
- bootstrap: Application initialization and default admin creation
- db: Database configuration and connection management
- errors: Error hierarchy, centralized normalizer and fatal process handlers
- middleware: Body size cap and request logging
- security: Password hashing, JWT tokens and password reset tokens
"""
