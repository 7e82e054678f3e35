"""
User directory, profiles, account settings and subscriptions.
"""
