"""
Simulation results for PDCD.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
import yaml
from matplotlib.axes import Axes

from ..core.network import ReactionNetwork
from ..core.species import Species
from ..utils import ureg

logger = logging.getLogger(__name__)


class SimulationResults:
    """Container for simulation results."""

    def __init__(
        self,
        network: ReactionNetwork,
        time: np.ndarray,
        concentrations: np.ndarray,
        initial_conditions: Dict[str, Dict[str, str | float]],
        sources: Optional[np.ndarray] = None,
    ):
        self.network: ReactionNetwork = network
        self.time: np.ndarray = time
        self.concentrations: np.ndarray = concentrations  # Shape: (n_time_points, dof), nm^-3
        self.initial_conditions = initial_conditions
        self.sources: np.ndarray = sources if sources is not None else np.zeros(network.get_dof())

    def get_final_concentrations(self, output_units: Optional[str] = None) -> np.ndarray:
        """Final degrees of freedom, in nm^-3 or in ``output_units``."""
        final_concentrations = self.concentrations[-1, :]
        if output_units is None:
            return final_concentrations
        return (final_concentrations * ureg("nm^-3")).to(output_units).magnitude

    def get_concentration(self, label: str) -> np.ndarray:
        """Concentration of one cluster over time."""
        index = self.network.registry.get_index_by_label(label)
        if index is None:
            raise ValueError(f"Cluster {label} not found in network")
        return self.concentrations[:, index]

    def get_total_atom_concentrations(self, species: Species | str) -> np.ndarray:
        """Total number density of one species over time."""
        return np.array(
            [self.network.get_total_atom_concentration(species, c.copy()) for c in self.concentrations]
        )

    def to_dataframe(self) -> pd.DataFrame:
        """Cluster concentrations with one row per time point."""
        labels = self.network.registry.get_labels()
        frame = pd.DataFrame(self.concentrations[:, : len(labels)], columns=labels)
        frame.insert(0, "time", self.time)
        return frame

    def plot_concentrations(
        self,
        labels: Optional[List[str]] = None,
        log_scale: bool = True,
        figsize: Tuple[int, int] = (10, 6),
    ) -> Axes:
        """Plot cluster concentrations over time."""
        from ..analysis.visualization import plot_concentrations

        return plot_concentrations(self, labels=labels, log_scale=log_scale, figsize=figsize)

    def print_summary(self) -> None:
        """Print a summary of the simulation results."""
        print("Simulation Results Summary")
        print("=========================")
        print(f"Time span: {self.time[0]:.3e} - {self.time[-1]:.3e} s")
        print(f"Number of time points: {len(self.time)}")
        print(f"Degrees of freedom: {self.network.get_dof()}")

        final_concentrations = self.get_final_concentrations()
        labels = self.network.registry.get_labels()
        print("\nFinal Concentrations (top 5):")
        sorted_indices = np.argsort(final_concentrations[: len(labels)])[::-1]
        for index in sorted_indices[:5]:
            print(f"  {labels[index]}: {final_concentrations[index]:.2e} nm^-3")

    def save_results(self, directory: str, filename_suffix: str = "results", overwrite: bool = False) -> None:
        """Save the network configuration (yaml) and the arrays (npz)."""
        dir_path = Path(directory)
        numpy_filename = f"{filename_suffix}.npz"
        if not overwrite and dir_path.joinpath(numpy_filename).exists():
            raise FileExistsError(f"File {numpy_filename} already exists in {directory}")
        config = {
            "network": self.network.configuration.to_config(),
            "temperature": self.network.temperature,
            "labels": self.network.registry.get_labels(),
            "initial_conditions": self.initial_conditions,
        }
        with open(dir_path.joinpath(f"{filename_suffix}.yaml"), "w") as f:
            yaml.dump(config, f)
        savez_kwargs: Dict[str, Any] = {
            "time": self.time,
            "concentrations": self.concentrations,
            "sources": self.sources,
        }
        np.savez(dir_path.joinpath(numpy_filename), **savez_kwargs)

    @classmethod
    def load_results(
        cls,
        npz_filename: str,
        network: ReactionNetwork,
        initial_conditions: Dict[str, Dict[str, str | float]],
    ) -> "SimulationResults":
        """Load results saved for ``network``."""
        data = np.load(npz_filename)
        if data["concentrations"].shape[1] != network.get_dof():
            raise ValueError("Saved results do not match the degrees of freedom of the network")
        return cls(
            network=network,
            time=data["time"],
            concentrations=data["concentrations"],
            initial_conditions=initial_conditions,
            sources=data["sources"],
        )
