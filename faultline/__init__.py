"""faultline — correlate, prioritize and learn from batches of detected errors."""

__version__ = "0.1.0"
