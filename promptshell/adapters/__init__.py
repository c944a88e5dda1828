"""
Adapters: configuration loading and command line
"""
