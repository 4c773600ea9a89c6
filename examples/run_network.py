"""Build a tungsten He-V-I network and integrate it at constant temperature."""
import logging
import sys
from pathlib import Path

from pdcd.io import InputParser
from pdcd.simulation import Simulation

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO, format="[%(levelname)s]:%(name)s:%(message)s")

# Use DEBUG for per cluster detail from pdcd modules
logging.getLogger("pdcd").setLevel(logging.INFO)

# Paths relative to script location (run from project root: python examples/run_network.py)
examples_dir = Path(__file__).resolve().parent
config_path = examples_dir / "tungsten_network.yaml"

parser = InputParser()
network = parser.get_network_from_yaml(config_path)
network.print_summary()

# Debug listing of every cluster and its reactions
with open(examples_dir / "network_dump.txt", "w") as f:
    network.dump_to(f)

simulation_config = parser.get_simulation_from_yaml(config_path)
simulation = Simulation(network)
results = simulation.run(
    simulation_config["initial_conditions"],
    t_span=simulation_config.get("t_span", (0.0, 1.0)),
)
results.print_summary()

print("Total helium (nm^-3):", results.get_total_atom_concentrations("He")[-1])
if "--dump" in sys.argv:
    network.dump_to(sys.stdout)
