"""Core data structures and building blocks of an extensible command shell."""

__version__ = "0.1.0"