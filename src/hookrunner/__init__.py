"""hookrunner: run scripts from disk when a webhook fires."""

__version__ = "0.1.0"
