"""practicedag - validation and traversal engine for practice dependency graphs."""

__version__ = "0.1.0"
