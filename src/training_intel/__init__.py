"""Training intelligence engine: recovery, overload, PR forecasting and achievements."""

__version__ = "0.1.0"
