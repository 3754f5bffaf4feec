"""
Marketplace Search - listing search and filtering service for a classifieds marketplace.

This package provides the search core: filter sanitization, query construction,
faceting, a read-through result cache and the Elasticsearch/Redis adapters behind it.
"""

__version__ = "1.0.0"
