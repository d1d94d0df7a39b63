"""
Command line front-end for the private token SDK.
"""
