"""Adaptive English practice: content generation, mistake review, operation tracking."""
