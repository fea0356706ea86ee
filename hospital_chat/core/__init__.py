"""
Core domain definitions: enums, exceptions and models.
"""
