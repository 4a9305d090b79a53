"""Sequential setup task runner with a text view model, completion summaries and persisted variables."""

__version__ = "0.1.0"