"""
Utility helpers: logging, notifications, audio fetching and decoding.
"""
