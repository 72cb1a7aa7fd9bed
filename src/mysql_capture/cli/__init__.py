"""
cli - Command line interface for mysql_capture.
"""
