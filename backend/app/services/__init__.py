"""
Services Layer

Bracket engine logic that:
- Works on plain domain records (BracketMatch, Team, SeedPlaceholder)
- Reads and writes matches only through a MatchStore
- Raises BracketEngineError subclasses; routes turn them into HTTP errors
"""
