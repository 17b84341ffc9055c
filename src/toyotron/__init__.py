"""Toyota shopping assistant: LLM tool-calling over a trim-spec catalog."""

__version__ = "0.1.0"
