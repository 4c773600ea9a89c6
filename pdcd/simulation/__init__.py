"""
Simulation modules for PDCD.
"""

from .diffusion import Diffusion2DHandler
from .results import SimulationResults
from .solver import Simulation

__all__ = ["Diffusion2DHandler", "Simulation", "SimulationResults"]
