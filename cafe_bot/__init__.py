"""
Cafe Bot: conversational drink ordering with single-use pickup tokens.
"""
