"""
Authentication: signup/login, JWT access tokens and refresh-token rotation.
"""
