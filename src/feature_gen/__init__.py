"""feature-gen: generate pytest tests from Gherkin features and step classes."""

__version__ = "0.1.0"
