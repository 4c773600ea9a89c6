"""
Zero dimensional time integration of a reaction network.
"""

import logging
import time
from typing import Dict, Optional, Tuple

import numpy as np
import scipy.integrate

from ..core.network import ReactionNetwork
from ..utils import parse_quantity
from .results import SimulationResults

logger = logging.getLogger(__name__)


def parse_initial_conditions(
    network: ReactionNetwork, initial_conditions: Dict[str, Dict[str, str | float]]
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Parse initial conditions keyed by cluster label.

    Example:
    initial_conditions = {
        "He1": {"type": "initial", "value": "1e-4 nm^-3"},
        "V1": {"type": "source", "value": "1e-6 nm^-3/s"},
    }

    Raises:
        ValueError: If a cluster is not in the network or the type is unknown.

    Returns:
        Tuple[np.ndarray, np.ndarray]: initial concentrations in nm^-3 and sources in nm^-3/s,
        both of length DOF.
    """
    initial_concentrations = np.zeros(network.get_dof())
    sources = np.zeros(network.get_dof())
    labels = network.registry.get_labels()
    for label, condition in initial_conditions.items():
        index = network.registry.get_index_by_label(label)
        if index is None:
            raise ValueError(f"Cluster {label} not found in network. Available clusters: {labels}")
        condition_type = condition.get("type", "initial")
        value = condition.get("value")
        if condition_type == "initial":
            initial_concentrations[index] = parse_quantity(value, default_unit="nm^-3", target_unit="nm^-3")
        elif condition_type == "source":
            sources[index] = parse_quantity(value, default_unit="nm^-3/s", target_unit="nm^-3/s")
        else:
            raise ValueError(f"Unknown initial condition type {condition_type} for cluster {label}")
        logger.info(f"Initial condition for cluster {label}: idx= {index}, type= {condition_type}, value= {value}")
    return initial_concentrations, sources


class Simulation:
    """Stiff integration of the network rate equations with scipy.

    Parameters
    ----------
    network : ReactionNetwork
        A reinitialized network.
    """

    def __init__(self, network: ReactionNetwork):
        self.network = network

    def run(
        self,
        initial_conditions: Dict[str, Dict[str, str | float]],
        t_span: Tuple[float, float] = (0.0, 100.0),
        temperature: Optional[float] = None,
        method: str = "BDF",
        rtol: float = 1e-6,
        atol: float = 1e-8,
        **kwargs,
    ) -> SimulationResults:
        """
        Integrate dC/dt = F(C) + S over ``t_span`` (seconds).

        Args:
            initial_conditions: Initial concentrations and sources by cluster label.
            t_span: Time span (t_start, t_end) in seconds.
            temperature: Temperature in K. If provided, updates the network temperature.
            method, rtol, atol, **kwargs: Passed to ``scipy.integrate.solve_ivp``.
        """
        if temperature is not None:
            self.network.set_temperature(temperature)
        if self.network.temperature is None:
            raise ValueError("The network temperature must be set before running a simulation")

        initial_concentrations, sources = parse_initial_conditions(self.network, initial_conditions)
        logger.info(f"Starting simulation run with t_span={t_span}, method={method}")
        run_start = time.time()

        fluxes = np.zeros(self.network.get_dof())

        def ode_system(t, concentrations):
            return self.network.compute_all_fluxes(concentrations, fluxes) + sources

        def jacobian(t, concentrations):
            return self.network.get_jacobian(concentrations)

        options = dict(kwargs)
        # the implicit methods accept a sparse Jacobian
        if method in ("BDF", "Radau"):
            options.setdefault("jac", jacobian)

        solution = scipy.integrate.solve_ivp(
            fun=ode_system,
            t_span=t_span,
            y0=initial_concentrations,
            method=method,
            rtol=rtol,
            atol=atol,
            **options,
        )
        if not solution.success:
            logger.warning(f"Integration stopped early: {solution.message}")
        logger.info(f"Simulation run completed in {time.time() - run_start:.3f}s")

        return SimulationResults(
            network=self.network,
            time=solution.t,
            concentrations=solution.y.T,
            initial_conditions=initial_conditions,
            sources=sources,
        )
