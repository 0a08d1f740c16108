"""
Object storage endpoints and the retry policy wrapping their calls.
"""
