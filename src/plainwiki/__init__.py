"""PlainWiki: a personal wiki keeping every article as a plain file."""

__version__ = "0.1.0"
