"""Categorize bank-exported transactions into budget categories with an LLM."""

__version__ = "0.1.0"
