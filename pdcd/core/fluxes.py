"""
Flux and Jacobian evaluation over a frozen reaction network.
"""

import logging
import time
from collections import defaultdict, namedtuple
from typing import Dict, Hashable, List, Optional, Sequence, Tuple, TypeAlias

import numpy as np
import scipy.sparse as sp

from .clusters import ClusterRegistry
from .reactions import ReactantRef, ReactionCatalog

logger = logging.getLogger(__name__)

# Net flux of one equation split by reaction kind
FluxComponents = namedtuple("FluxComponents", ["production", "combination", "dissociation", "emission"])

LinearForm: TypeAlias = List[Tuple[int, float]]


class FluxJacobianEngine:
    """
    Mass-action fluxes and their partial derivatives.

    Every reaction participant is a linear form over the degrees of freedom: a raw cluster is
    its own concentration, a super cluster member is ``l0 + sum_a d_a * l1_a``. Rates are
    projected back onto equation rows with the transposed weights (member fluxes are averaged
    onto the zeroth moment and distance weighted onto the first moments).

    ``compile`` freezes the operators and the CSR sparsity pattern; afterwards every call only
    evaluates values over the frozen structure.
    """

    def __init__(self, registry: ClusterRegistry, catalog: ReactionCatalog):
        self.registry = registry
        self.catalog = catalog
        self.dof: int = 0
        self._compiled = False
        self._production_rates = np.zeros(0)
        self._dissociation_rates = np.zeros(0)
        self._connected: List[np.ndarray] = []

    # ------------------------------------------------------------------ structure

    def input_form(self, ref: ReactantRef) -> LinearForm:
        """Concentration of a participant as weights over the degrees of freedom."""
        cluster = self.registry.get_by_id(ref.cluster_id)
        form = [(cluster.id - 1, 1.0)]
        if cluster.is_super:
            for axis in cluster.axes:
                if (distance := cluster.distance(axis, ref.composition)) != 0.0:
                    form.append((cluster.moment_ids[axis] - 1, distance))
        return form

    def output_form(self, ref: ReactantRef) -> LinearForm:
        """Rows receiving the rate of a participant and their weights."""
        cluster = self.registry.get_by_id(ref.cluster_id)
        if not cluster.is_super:
            return [(cluster.id - 1, 1.0)]
        form = [(cluster.id - 1, 1.0 / cluster.member_count)]
        for axis in cluster.axes:
            distance = cluster.distance(axis, ref.composition)
            norm = cluster.distance_norms[axis]
            if distance != 0.0 and norm > 0.0:
                form.append((cluster.moment_ids[axis] - 1, distance / norm))
        return form

    @staticmethod
    def _combine(gains: List[LinearForm], losses: List[LinearForm]) -> LinearForm:
        """Net output weights of one reaction, exact zeros dropped."""
        weights: Dict[int, float] = defaultdict(float)
        for form in gains:
            for row, weight in form:
                weights[row] += weight
        for form in losses:
            for row, weight in form:
                weights[row] -= weight
        return [(row, weight) for row, weight in sorted(weights.items()) if weight != 0.0]

    def _matrix(self, forms: List[LinearForm], transpose: bool = False) -> sp.csr_matrix:
        """Rows are forms (or columns when transposed); duplicate entries are summed."""
        rows, cols, data = [], [], []
        for index, form in enumerate(forms):
            for column, weight in form:
                rows.append(index)
                cols.append(column)
                data.append(weight)
        shape = (len(forms), self.dof)
        if transpose:
            rows, cols, shape = cols, rows, (self.dof, len(forms))
        return sp.coo_matrix(
            (np.array(data, dtype=float), (np.array(rows, dtype=np.int64), np.array(cols, dtype=np.int64))),
            shape=shape,
        ).tocsr()

    def compile(
        self,
        active_dissociations: Optional[Sequence[bool]] = None,
        production_classes: Optional[Sequence[Hashable]] = None,
    ) -> None:
        """Build the operators and the sparsity pattern. The registry must be reinitialized.

        ``active_dissociations`` flags the dissociations that can have a nonzero rate; the others
        contribute no Jacobian entries. Productions sharing a ``production_classes`` key have
        equal rate constants at every temperature.
        """
        start_time = time.time()
        self.dof = self.registry.dof
        productions = self.catalog.productions
        dissociations = self.catalog.dissociations
        n_prod = len(productions)

        first_forms = [self.input_form(r.first) for r in productions]
        second_forms = [self.input_form(r.second) for r in productions]
        emitting_forms = [self.input_form(r.emitting) for r in dissociations]
        self._first = self._matrix(first_forms)
        self._second = self._matrix(second_forms)
        self._emitting = self._matrix(emitting_forms)

        # per kind projections, used for the flux breakdown
        self._production_projection = self._matrix([self.output_form(r.product) for r in productions], True)
        self._combination_projection = self._matrix(
            [self._combine([self.output_form(r.first), self.output_form(r.second)], []) for r in productions], True
        )
        self._dissociation_projection = self._matrix(
            [
                self._combine([self.output_form(r.first_product), self.output_form(r.second_product)], [])
                for r in dissociations
            ],
            True,
        )
        self._emission_projection = self._matrix([self.output_form(r.emitting) for r in dissociations], True)

        production_outputs = [
            self._combine([self.output_form(r.product)], [self.output_form(r.first), self.output_form(r.second)])
            for r in productions
        ]
        dissociation_outputs = [
            self._combine(
                [self.output_form(r.first_product), self.output_form(r.second_product)],
                [self.output_form(r.emitting)],
            )
            for r in dissociations
        ]
        self._production_net = self._matrix(production_outputs, True)
        self._dissociation_net = self._matrix(dissociation_outputs, True)

        # Jacobian terms: (row, column, coefficient, index of the per-call multiplier)
        # multipliers are [k+ * c_second, k+ * c_first, k-]. Terms whose multipliers agree at
        # every state are summed first so cancelling contributions leave no entry.
        if production_classes is None:
            production_classes = list(range(n_prod))
        if active_dissociations is None:
            active_dissociations = [True] * len(dissociations)
        terms: Dict[Tuple, List] = {}

        def _add_terms(outputs: LinearForm, inputs: LinearForm, multiplier: int, key: Tuple) -> None:
            for row, weight in outputs:
                for column, coefficient in inputs:
                    term = terms.setdefault((row, column, key), [0.0, multiplier])
                    term[0] += weight * coefficient

        for index in range(n_prod):
            rate_class = production_classes[index]
            first_key = ("p", rate_class, tuple(second_forms[index]))
            second_key = ("p", rate_class, tuple(first_forms[index]))
            _add_terms(production_outputs[index], first_forms[index], index, first_key)
            _add_terms(production_outputs[index], second_forms[index], n_prod + index, second_key)
        for index in range(len(dissociations)):
            if active_dissociations[index]:
                _add_terms(dissociation_outputs[index], emitting_forms[index], 2 * n_prod + index, ("d", index))

        term_rows, term_cols, term_coefs, term_multipliers = [], [], [], []
        for (row, column, _), (coefficient, multiplier) in terms.items():
            if coefficient != 0.0:
                term_rows.append(row)
                term_cols.append(column)
                term_coefs.append(coefficient)
                term_multipliers.append(multiplier)

        # columns a row depends on through reactions
        connected: List[set] = [set() for _ in range(self.dof)]
        for row, column in zip(term_rows, term_cols):
            connected[row].add(column)
        self._connected = [np.array(sorted(row_columns), dtype=np.int64) for row_columns in connected]

        # sparsity pattern, seeded with the diagonal
        pattern: List[set] = [row_columns | {row} for row, row_columns in enumerate(connected)]
        self.indptr = np.zeros(self.dof + 1, dtype=np.int64)
        columns: List[int] = []
        position: Dict[Tuple[int, int], int] = {}
        for row, row_columns in enumerate(pattern):
            for column in sorted(row_columns):
                position[(row, column)] = len(columns)
                columns.append(column)
            self.indptr[row + 1] = len(columns)
        self.indices = np.array(columns, dtype=np.int64)
        self.nnz = len(columns)

        self._term_positions = np.array(
            [position[(r, c)] for r, c in zip(term_rows, term_cols)], dtype=np.int64
        )
        self._term_coefficients = np.array(term_coefs, dtype=float)
        self._term_multipliers = np.array(term_multipliers, dtype=np.int64)
        self._term_scale = np.zeros_like(self._term_coefficients)
        self._compiled = True
        self.update_rate_constants()
        logger.info(
            f"Flux engine compiled in {time.time() - start_time:.3f} seconds: "
            f"{self.dof} degrees of freedom, {self.nnz} Jacobian entries, {len(term_rows)} terms"
        )

    def update_rate_constants(self) -> None:
        """Copy the rate constants from the catalog into the operator arrays."""
        self._production_rates = np.array([r.rate_constant for r in self.catalog.productions], dtype=float)
        self._dissociation_rates = np.array([r.rate_constant for r in self.catalog.dissociations], dtype=float)
        rates = np.concatenate([self._production_rates, self._production_rates, self._dissociation_rates])
        self._term_scale = self._term_coefficients * rates[self._term_multipliers]

    # ------------------------------------------------------------------ evaluation

    def _reaction_rates(self, concentrations: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        first = self._first @ concentrations
        second = self._second @ concentrations
        production = self._production_rates * first * second
        dissociation = self._dissociation_rates * (self._emitting @ concentrations)
        return first, second, production, dissociation

    def compute_reaction_rates(self, concentrations: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Rate of every production and every dissociation reaction."""
        _, _, production, dissociation = self._reaction_rates(concentrations)
        return production, dissociation

    def compute_all_fluxes(self, concentrations: np.ndarray, fluxes: np.ndarray) -> np.ndarray:
        """Net flux of every degree of freedom, written into ``fluxes``."""
        _, _, production, dissociation = self._reaction_rates(concentrations)
        fluxes[:] = self._production_net @ production + self._dissociation_net @ dissociation
        return fluxes

    def compute_flux_components(self, concentrations: np.ndarray) -> FluxComponents:
        """Flux of every degree of freedom split by reaction kind (all non-negative terms)."""
        _, _, production, dissociation = self._reaction_rates(concentrations)
        return FluxComponents(
            production=self._production_projection @ production,
            combination=self._combination_projection @ production,
            dissociation=self._dissociation_projection @ dissociation,
            emission=self._emission_projection @ dissociation,
        )

    def compute_partial_values(self, concentrations: np.ndarray) -> np.ndarray:
        """Jacobian values in the frozen CSR order."""
        first, second, _, _ = self._reaction_rates(concentrations)
        multipliers = np.concatenate([second, first, np.ones(len(self._dissociation_rates))])
        return np.bincount(
            self._term_positions,
            weights=self._term_scale * multipliers[self._term_multipliers],
            minlength=self.nnz,
        )

    def compute_all_partials(
        self,
        concentrations: np.ndarray,
        values: np.ndarray,
        indices: np.ndarray,
        row_sizes: np.ndarray,
    ) -> None:
        """Fill caller owned arrays: values and column indices (length nnz, row major) and
        the number of entries of every row."""
        values[:] = self.compute_partial_values(concentrations)
        indices[:] = self.indices
        row_sizes[:] = np.diff(self.indptr)

    def get_jacobian(self, concentrations: np.ndarray) -> sp.csr_matrix:
        return sp.csr_matrix(
            (self.compute_partial_values(concentrations), self.indices.copy(), self.indptr.copy()),
            shape=(self.dof, self.dof),
        )

    def get_row_columns(self, row: int) -> np.ndarray:
        return self.indices[self.indptr[row] : self.indptr[row + 1]]

    def get_connected_columns(self, row: int) -> np.ndarray:
        """Columns with a reaction derived partial in ``row``, without the diagonal seed."""
        return self._connected[row]

    def get_partial_row(self, concentrations: np.ndarray, row: int) -> np.ndarray:
        """Dense partial derivative row of one equation."""
        values = self.compute_partial_values(concentrations)
        dense = np.zeros(self.dof)
        start, stop = self.indptr[row], self.indptr[row + 1]
        dense[self.indices[start:stop]] = values[start:stop]
        return dense
