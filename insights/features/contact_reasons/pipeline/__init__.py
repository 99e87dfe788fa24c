"""
Pipeline components for the contact-reasons report.

Leaf-first: time classification and reason normalization, the period and
reason aggregators built on them, and the category clusterer.
"""

__all__ = ["time_classifier", "normalizer", "period_aggregation", "reason_aggregation", "clustering"]
