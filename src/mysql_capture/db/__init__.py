"""
db - Statement generation and execution against MySQL-family servers.
"""
