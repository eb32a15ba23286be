"""
International soccer team ratings from a hierarchical Poisson model.
"""

__version__ = "1.0.0"
