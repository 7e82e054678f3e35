"""
Collection resource: CRUD, styles listing and likes.
"""
