"""MetEyes: Met Museum gallery client with AI artwork insights."""

__version__ = "1.0.0"
