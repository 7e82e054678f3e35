"""
Tag and brand normalization plus upsert-by-name persistence.
"""
