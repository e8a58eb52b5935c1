"""codebox - run untrusted shell snippets in policy-driven throwaway containers."""

__version__ = "0.1.0"
