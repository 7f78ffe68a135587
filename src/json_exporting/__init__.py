"""json_exporting – export host metrics to time-series backends as JSON."""

__version__ = "0.1.0"
