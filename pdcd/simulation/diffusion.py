"""
Five point finite difference diffusion on a 2D grid.
"""

import logging
from typing import Dict, List, Sequence

import numpy as np

logger = logging.getLogger(__name__)


class Diffusion2DHandler:
    """
    Diffusion term of the mobile clusters for one grid point of a 2D grid.

    The grid is non uniform along x (``hx_left``/``hx_right``) and uniform along y with
    ``sy = 1 / hy^2``. Stencil order is middle, left, right, bottom, top.

    Parameters
    ----------
    network : ReactionNetwork
        Network at the current temperature.
    """

    STENCIL_SIZE = 5

    def __init__(self, network):
        self.network = network
        self.diffusing_indices: np.ndarray = np.zeros(0, dtype=np.int64)
        self.initialize()

    def initialize(self) -> None:
        """Find the diffusing clusters (zero based columns)."""
        self.diffusing_indices = np.array(
            [c.id - 1 for c in self.network.get_all() if not c.is_super and c.diffusion_factor > 0.0],
            dtype=np.int64,
        )
        logger.debug(f"{len(self.diffusing_indices)} diffusing clusters")

    def get_number_of_diffusing(self) -> int:
        return len(self.diffusing_indices)

    def initialize_ofill(self) -> Dict[int, List[int]]:
        """Off diagonal fill: every diffusing cluster couples to itself at the neighbour points."""
        return {int(index): [int(index)] for index in self.diffusing_indices}

    def _coefficients(self) -> np.ndarray:
        # coefficients are read at call time so temperature changes are picked up
        clusters = self.network.get_all()
        return np.array([clusters[index].diffusion_coefficient for index in self.diffusing_indices])

    def compute_diffusion(
        self,
        concentrations: Sequence[np.ndarray],
        updated: np.ndarray,
        hx_left: float,
        hx_right: float,
        sy: float = 0.0,
    ) -> np.ndarray:
        """Add the diffusion flux of the middle point to ``updated``.

        ``concentrations`` holds the DOF vectors of the middle, left, right, bottom and top points.
        """
        if len(concentrations) != self.STENCIL_SIZE:
            raise ValueError(f"Expected {self.STENCIL_SIZE} stencil points, got {len(concentrations)}")
        index = self.diffusing_indices
        middle, left, right, bottom, top = (np.asarray(c)[index] for c in concentrations)
        updated[index] += self._coefficients() * (
            2.0 * ((left - middle) / hx_left + (right - middle) / hx_right) / (hx_left + hx_right)
            + sy * (bottom + top - 2.0 * middle)
        )
        return updated

    def compute_partials(self, hx_left: float, hx_right: float, sy: float = 0.0):
        """Partial derivatives of the middle point flux.

        Returns the diffusing indices and the values, ``STENCIL_SIZE`` per diffusing cluster in
        stencil order.
        """
        coefficients = self._coefficients()
        values = np.empty((len(coefficients), self.STENCIL_SIZE))
        values[:, 0] = -coefficients * (2.0 / (hx_left * hx_right) + 2.0 * sy)
        values[:, 1] = coefficients * 2.0 / (hx_left * (hx_left + hx_right))
        values[:, 2] = coefficients * 2.0 / (hx_right * (hx_left + hx_right))
        values[:, 3] = coefficients * sy
        values[:, 4] = coefficients * sy
        return self.diffusing_indices.copy(), values.ravel()
