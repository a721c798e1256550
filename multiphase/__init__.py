"""
multiphase - chemical equilibrium of multiphase mixtures.

Finds the composition of a set of phases at a common temperature and
pressure that minimizes the total Gibbs free energy subject to element
conservation.
"""

__version__ = "0.1.0"
