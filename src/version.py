"""Package version, shared by the package and the command-line tool."""

__version__ = "1.0.0"
