"""NISA Signals — explainable stock/ETF signals and ranked recommendations."""

__version__ = "0.1.0"
