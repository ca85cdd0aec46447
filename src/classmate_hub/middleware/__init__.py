"""
HTTP middleware and error handlers
"""
