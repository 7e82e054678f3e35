"""
Item resource: CRUD, favorites and up/down votes.
"""
