"""
Client settings, profiles, and their persistence.
"""
