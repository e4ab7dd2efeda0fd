"""recipex - a declarative recipe runner for justfiles."""

__version__ = "0.1.0"
