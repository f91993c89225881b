"""
gdmstudy - synthetic gestational diabetes screening cohort.

Generates a reproducible per-subject dataset (maternal age, infant sex,
baseline and one-hour glucose, derived diagnosis) and aggregates it into
long form and grouped summary statistics.
"""

__version__ = "1.0.0"
