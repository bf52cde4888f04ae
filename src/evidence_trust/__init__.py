"""Evidence quality scoring, claim confidence and citation grounding."""

__version__ = "0.1.0"
