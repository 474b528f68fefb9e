"""Interpreter and cost model for a small register-based assembly language."""

__version__ = "0.1.0"
__all__ = ["__version__"]