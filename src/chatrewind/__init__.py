"""ChatRewind - year-in-review analysis of chat history exports."""

__version__ = "0.1.0"
