"""Release tracker: aggregate release feeds from starred repositories."""

__version__ = "0.1.0"
