"""
Furfolio analytics: retention, churn, trend, behavior, loyalty and revenue
analytics for pet-grooming businesses.
"""

__version__ = '1.0.0'
