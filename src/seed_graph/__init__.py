"""
Seed Graph - Dependency-ordered synthetic data for a content/email platform.

This package fills a relational database with plausible fake records. Tables
are populated in foreign-key order, each by its own importer, and high-volume
event tables (email recipients) get causally ordered timestamps drawn from a
shaped activity curve.
"""

__version__ = "0.1.0"
