"""
Subtrack - Billing Normalization & Analytics Core

The numeric heart of a multi-tenant subscription tracker: it turns
subscriptions of any billing cadence and currency into comparable
monthly/annual figures and reduces them into dashboard analytics.

DESIGN PRINCIPLES:
1. Every aggregate is a pure reduction over its inputs
2. Dashboards always get a number (fail-soft currency conversion)
3. Degenerate input yields explicit zeros, never NaN
4. Money is rounded once, at the point of return
5. Exchange-rate storage is swappable
"""

__version__ = "1.0.0"
__author__ = "Subtrack Team"
