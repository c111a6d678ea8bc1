"""Routing — URL pattern matching and declared routes.

Patterns are parsed on demand and matched by a linear, most-specific-wins
scan; routes carry the rules and access level that validate a match.
"""
