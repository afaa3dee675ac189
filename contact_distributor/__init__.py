"""Contact spreadsheet distribution across a fixed roster of agents."""

__version__ = "0.1.0"
