"""janggibot: an agent that plays Janggi on a rendered game client."""

__version__ = "0.1.0"
