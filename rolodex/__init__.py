"""
rolodex: organizations, people and the roles that connect them, kept consistent
across independently stored documents.
"""
