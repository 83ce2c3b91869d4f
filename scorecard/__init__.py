"""
Cricket Ball-by-Ball Scorer

Records a single limited-overs match one delivery at a time and derives
the live score, batting and bowling figures, over completion, innings
transition and the match result.
"""

__version__ = "0.1.0"
