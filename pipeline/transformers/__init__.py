"""Text transformations applied before aggregation"""
