"""
Request handling for the analytics REST endpoints.
"""
