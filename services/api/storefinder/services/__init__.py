"""Catalog services.

Routes call CatalogService; the helpers here (slugs, text relevance, geo
parsing, ranking pipelines) are plain functions with no I/O.
"""
