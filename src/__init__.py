"""
GCP Billing Watcher

Polls the Google Cloud billing export in BigQuery, derives cost metrics over
several time windows and renders them with budget-based alerting in English
or Japanese.
"""

__version__ = "1.0.0"
__author__ = "Billing Watcher Team"
