"""
Use Cases

Organized into domain folders:
- auth/: Credentials, login sessions and password reset
"""
