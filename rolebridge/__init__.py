"""rolebridge: translate between product and engineering language with an LLM."""

__version__ = "0.1.0"
