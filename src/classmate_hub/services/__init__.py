"""
Domain services: credentials, tokens, sessions, account linking, directory and gallery
"""
