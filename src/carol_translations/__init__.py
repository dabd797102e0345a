"""Community translation proposals, voting, and contributor reputation for carols."""

__version__ = "0.1.0"
