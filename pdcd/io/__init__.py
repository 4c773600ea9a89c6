"""
Input/output for PDCD: cluster sources and configuration files.
"""

from .loader import ClusterGenerator, load_descriptors, loads_descriptors, read_descriptors
from .parser import InputParser

__all__ = ["ClusterGenerator", "InputParser", "load_descriptors", "loads_descriptors", "read_descriptors"]
