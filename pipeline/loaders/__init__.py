"""Idempotent writers for rollup tables"""
