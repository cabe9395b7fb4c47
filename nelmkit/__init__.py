"""Option defaults, manifest rendering, tracking specs and command-line parsing for chart releases."""

__version__ = "0.1.0"