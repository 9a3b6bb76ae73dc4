"""planpilot - dependency-aware execution of multi-step engineering plans."""
__version__ = "0.1.0"
