"""
Mock objects and test models shared across the test suite.
"""
