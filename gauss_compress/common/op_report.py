"""
Operator Report for audit compliance.

Every compression invocation emits an OpReport that:
1. Declares what family mapping occurred (family_in -> family_out)
2. Lists all approximation triggers (greedy merge, pass cap, ...)
3. Names the iterative scheme if the operator is not closed-form
4. Carries the counts needed to check sample conservation offline

Policy:
    - Exact operators cannot declare approximation triggers.
    - Closed-form operators cannot list a solver.
    - Iterative (non closed-form) operators must name their solver.
    - Operators that drop points must report n_input / n_output so the
      conservation check (sum of nbPoints) can be replayed from the report.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class OpReport:
    """
    Audit-compliant operation report.

    Attributes:
        name: Operator name (e.g., "GaussianSummaryCompression")
        exact: True if operation is exact (no approximation)
        approximation_triggers: List of what caused approximation
        family_in: Input representation
        family_out: Output representation
        closed_form: True if no iterative solver was used
        solver_used: Name of the iteration scheme if not closed-form
        parameters: Parameters the operator ran with
        metrics: Counts and diagnostics
        notes: Human-readable explanation
        timestamp: When the report was generated
    """
    name: str
    exact: bool
    approximation_triggers: list[str] = field(default_factory=list)
    family_in: str = ""
    family_out: str = ""
    closed_form: bool = False
    solver_used: Optional[str] = None
    parameters: dict = field(default_factory=dict)
    metrics: dict = field(default_factory=dict)
    notes: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def validate(self) -> None:
        """
        Validate the report satisfies audit requirements.

        Raises ValueError if validation fails.
        """
        if self.exact and self.approximation_triggers:
            raise ValueError("Exact op cannot declare approximation triggers.")

        if self.closed_form and self.solver_used is not None:
            raise ValueError("Closed-form op must not list a solver.")

        if not self.closed_form and self.solver_used is None:
            raise ValueError("Iterative op must name its solver.")

        if "n_output" in self.metrics:
            if "n_input" not in self.metrics:
                raise ValueError("Report with n_output must include n_input.")
            if self.metrics["n_output"] > self.metrics["n_input"]:
                raise ValueError(
                    f"Point count grew: {self.metrics['n_input']} -> {self.metrics['n_output']}"
                )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "exact": self.exact,
            "approximation_triggers": list(self.approximation_triggers),
            "family_in": self.family_in,
            "family_out": self.family_out,
            "closed_form": self.closed_form,
            "solver_used": self.solver_used,
            "parameters": dict(self.parameters),
            "metrics": dict(self.metrics),
            "notes": self.notes,
            "timestamp": self.timestamp,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)
