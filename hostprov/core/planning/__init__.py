"""Plan building and step-graph utilities."""

from hostprov.core.planning.builder import build_plan, package_set
from hostprov.core.planning.dag import PlanError, topological_order, validate_dag

__all__ = ["PlanError", "build_plan", "package_set", "topological_order", "validate_dag"]
