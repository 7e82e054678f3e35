"""
Image references that items link to by id.
"""
