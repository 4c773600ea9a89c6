import numpy as np
import pytest

from pdcd.core.grouping import GroupingConfiguration
from pdcd.core.network import NetworkConfiguration, ReactionNetwork
from pdcd.io.loader import ClusterGenerator, loads_descriptors

# He1..He8, V1 and He1V1; the He8 and He1V1 clusters do not move
DIFFUSION_NETWORK = """\
# numHe numV numI Ef Em D0
1 0 0 6.15 0.13 2.9e10
2 0 0 11.44 0.20 3.2e10
3 0 0 16.35 0.25 2.3e10
4 0 0 21.0 0.20 1.7e10
5 0 0 26.1 0.12 5.0e9
6 0 0 30.24 0.3 1.0e9
7 0 0 34.93 0.4 5.0e8
8 0 0 38.80 infinite 0.0
0 1 0 3.6 1.30 1.8e12
1 1 0 8.20919 inf 0
"""

SMALL_NETWORK = """\
1 0 0 6.15 0.13 2.9e10
0 50 0 inf inf 0
0 0 1 10.0 inf 0
1 50 0 inf inf 0
"""


@pytest.fixture
def diffusion_network() -> ReactionNetwork:
    return ReactionNetwork.from_descriptors(loads_descriptors(DIFFUSION_NETWORK), temperature=1000.0)


@pytest.fixture
def small_network() -> ReactionNetwork:
    return ReactionNetwork.from_descriptors(loads_descriptors(SMALL_NETWORK), temperature=1000.0)


@pytest.fixture
def tungsten_network() -> ReactionNetwork:
    """Every cluster takes part in at least one reaction."""
    descriptors = ClusterGenerator(max_he=4, max_v=3, max_i=2).generate()
    return ReactionNetwork.from_descriptors(descriptors, temperature=1000.0)


@pytest.fixture
def grouped_network() -> ReactionNetwork:
    generator = ClusterGenerator(max_he=4, max_v=4, max_i=1)
    grouping = GroupingConfiguration(
        threshold=3,
        bounds={"He": [1, 3, 5], "V": [1, 3, 5]},
        max_sizes=generator.max_sizes,
    )
    configuration = NetworkConfiguration(material="W", grouping=grouping)
    return ReactionNetwork.from_descriptors(generator.generate(), configuration, temperature=1000.0)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(12345)


def random_concentrations(network: ReactionNetwork, rng: np.random.Generator) -> np.ndarray:
    """Positive cluster concentrations, small first moments."""
    concentrations = rng.uniform(1.0e-4, 1.0e-2, network.get_dof())
    n_clusters = network.size
    concentrations[n_clusters:] *= 0.1
    return concentrations
