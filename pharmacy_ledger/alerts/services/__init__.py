"""
Alert services.
"""
