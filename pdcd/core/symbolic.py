"""
Symbolic rate equations of a reaction network using SymPy.
"""

import logging
import time
from typing import Callable, Dict, List, Optional

import numpy as np
import sympy as sym

from .fluxes import LinearForm

logger = logging.getLogger(__name__)


class RateEquations:
    """
    Mass-action rate equations of a network built with SymPy.

    One equation per degree of freedom, in terms of the concentration symbols ``C_0..C_{n-1}``
    (column ``id - 1``), the production rate constants ``kp_0..`` and the dissociation rate
    constants ``kd_0..`` in catalog order. Intended for inspection and for cross-checking the
    sparse Jacobian on small networks.

    Parameters
    ----------
    network : ReactionNetwork
        A reinitialized network.
    """

    def __init__(self, network):
        self.network = network
        self.n_dof = network.get_dof()
        self._create_symbols()
        self.ode_equations = self._build_ode_equations()
        self._jacobian: Optional[sym.Matrix] = None
        self._function_cache: Dict[str, Callable] = {}

    def _create_symbols(self):
        """Create symbolic variables for the system."""
        catalog = self.network.catalog
        self.concentrations = sym.symbols(f"C_0:{self.n_dof}")
        self.production_rates = sym.symbols(f"kp_0:{len(catalog.productions)}")
        self.dissociation_rates = sym.symbols(f"kd_0:{len(catalog.dissociations)}")

    def _linear(self, form: LinearForm) -> sym.Expr:
        return sym.Add(*(sym.Float(weight) * self.concentrations[column] for column, weight in form))

    def _build_ode_equations(self) -> List[sym.Expr]:
        """dC/dt = production - combination + dissociation - emission for every row."""
        logger.info("Building symbolic rate equations...")
        start_time = time.time()
        engine = self.network.engine
        terms: List[List[sym.Expr]] = [[] for _ in range(self.n_dof)]

        for index, reaction in enumerate(self.network.catalog.productions):
            rate = (
                self.production_rates[index]
                * self._linear(engine.input_form(reaction.first))
                * self._linear(engine.input_form(reaction.second))
            )
            for row, weight in engine.output_form(reaction.product):
                terms[row].append(weight * rate)
            for participant in (reaction.first, reaction.second):
                for row, weight in engine.output_form(participant):
                    terms[row].append(-weight * rate)

        for index, reaction in enumerate(self.network.catalog.dissociations):
            rate = self.dissociation_rates[index] * self._linear(engine.input_form(reaction.emitting))
            for participant in (reaction.first_product, reaction.second_product):
                for row, weight in engine.output_form(participant):
                    terms[row].append(weight * rate)
            for row, weight in engine.output_form(reaction.emitting):
                terms[row].append(-weight * rate)

        equations = [sym.Add(*row_terms) for row_terms in terms]
        logger.info(f"Symbolic rate equations built in {time.time() - start_time:.3f} seconds")
        return equations

    def jacobian(self) -> sym.Matrix:
        """Symbolic Jacobian with respect to the concentrations."""
        if self._jacobian is None:
            self._jacobian = sym.Matrix(self.ode_equations).jacobian(self.concentrations)
        return self._jacobian

    def _symbols(self):
        return (self.concentrations, self.production_rates, self.dissociation_rates)

    def _rate_arguments(self):
        catalog = self.network.catalog
        return (
            [r.rate_constant for r in catalog.productions],
            [r.rate_constant for r in catalog.dissociations],
        )

    def get_flux_function(self) -> Callable[[np.ndarray], np.ndarray]:
        """Numerical f(concentrations) with the current rate constants of the network."""
        if "fluxes" not in self._function_cache:
            self._function_cache["fluxes"] = sym.lambdify(self._symbols(), self.ode_equations, modules="numpy")
        function = self._function_cache["fluxes"]
        production, dissociation = self._rate_arguments()
        return lambda concentrations: np.array(function(concentrations, production, dissociation), dtype=float)

    def get_jacobian_function(self) -> Callable[[np.ndarray], np.ndarray]:
        """Numerical dense J(concentrations) with the current rate constants of the network."""
        if "jacobian" not in self._function_cache:
            self._function_cache["jacobian"] = sym.lambdify(self._symbols(), self.jacobian(), modules="numpy")
        function = self._function_cache["jacobian"]
        production, dissociation = self._rate_arguments()
        return lambda concentrations: np.array(function(concentrations, production, dissociation), dtype=float)

    def print_ode_equation(self, row: int):
        """Print the equation of one degree of freedom."""
        print(f"d[{self._row_label(row)}]/dt = {self.ode_equations[row]}")

    def _row_label(self, row: int) -> str:
        registry = self.network.registry
        if (cluster := registry.get_by_id(row + 1)) is not None:
            return cluster.label
        super_cluster, axis = registry.get_moment_owner(row + 1)
        return f"{super_cluster.label}:{axis.value}"

    def print_ode_equations(self, max_rows: int = 5):
        """Print the equations in a readable format."""
        print("Rate Equations:")
        print("=" * 50)
        for row in range(self.n_dof):
            self.print_ode_equation(row)
            if row >= max_rows - 1 and row < self.n_dof - 1:
                print(f"... ({self.n_dof - max_rows} more equations)")
                break
        print()
