"""
Web API for the development wizard.
"""
