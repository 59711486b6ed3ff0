"""
Test suite for the analysis module.
"""
