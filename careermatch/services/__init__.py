"""
Services module - heuristics, AI clients and data access used by the routes.
"""
