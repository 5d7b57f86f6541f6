"""runbox - run untrusted code in single-use Docker containers."""

__version__ = "1.0.0"
