"""Pure cost and latency functions for a (request, unit) pair.

Two cost lenses are exposed and may diverge:
  * decision_cost: weighted by the load-adaptive WeightVector, used by the
    placement engine to choose a unit.
  * reporting_cost: weighted by fixed configuration weights, used only to
    report total cost after the fact.
Zero denominators return UNREACHABLE_COST rather than raising.
"""

from typing import Any, Dict, Tuple

from placement_tools.config import SIMULATION_CONFIG
from placement_tools.data_structures import PrefetchBundle, ResourceUnit, ServiceRequest, WeightVector

UNREACHABLE_COST = float('inf')


def decision_cost(
    request: ServiceRequest, unit: ResourceUnit, weights: WeightVector
) -> float:
  return (
      weights.computation * unit.computation_cost * request.computation_load
      + weights.retention * unit.retention_cost
      + weights.transfer * request.transfer_cost
      + weights.preparation * request.preparation_cost
  )


def reporting_cost(
    request: ServiceRequest,
    unit: ResourceUnit,
    config: Dict[str, Any] = SIMULATION_CONFIG,
) -> float:
  return decision_cost(request, unit, WeightVector(*config['reporting_weights']))


def request_latency(request: ServiceRequest, unit: ResourceUnit) -> float:
  """Modeled latency contribution of serving request on unit."""
  return request.computation_load * unit.computation_cost + request.transfer_cost


def computation_cost(requirement: float, power: float) -> float:
  if power <= 0:
    return UNREACHABLE_COST
  return requirement / power


def retention_cost(
    data_size: float, config: Dict[str, Any] = SIMULATION_CONFIG
) -> float:
  if data_size > config['retention_data_threshold']:
    return config['retention_cost_high']
  return config['retention_cost_low']


def transfer_cost(data_size: float, bandwidth: float, distance: float = 0.0) -> float:
  """data_size / (bandwidth + distance + 1); the +1 keeps zero bandwidth defined."""
  denominator = bandwidth + distance + 1.0
  if denominator <= 0:
    return UNREACHABLE_COST
  return data_size / denominator


def transfer_latency(data_size: float, transfer_rate: float) -> float:
  if transfer_rate <= 0:
    return UNREACHABLE_COST
  return data_size / transfer_rate


def prefetch_cost(
    bundle: PrefetchBundle, config: Dict[str, Any] = SIMULATION_CONFIG
) -> float:
  return config['prefetch_cost_multiplier'] * bundle.prefetch_cost


def transfer_choice_cost(
    request: ServiceRequest,
    unit: ResourceUnit,
    config: Dict[str, Any] = SIMULATION_CONFIG,
) -> float:
  """Distance plus a penalty proportional to how full the unit already is."""
  if unit.max_capacity <= 0:
    return UNREACHABLE_COST
  workload_penalty = unit.used_capacity / unit.max_capacity
  return request.distance_to_unit + config['transfer_workload_penalty'] * workload_penalty


def instance_cost(
    unit: ResourceUnit, rng, config: Dict[str, Any] = SIMULATION_CONFIG
) -> Tuple[float, float]:
  """Cost and latency of one function instance hosted on unit.

  Each factor is scaled by an independent draw from instance_jitter_range.
  A host reporting no CPU usage is idle and adds no computation cost.
  Returns (cost, latency_seconds).
  """
  low, high = config['instance_jitter_range']
  weights = config['instance_cost_weights']
  data_size = config['instance_data_size']

  computation_jitter = rng.uniform(low, high)
  if unit.cpu_usage <= 0:
    computation = 0.0  # Idle host
  else:
    computation = computation_cost(
        config['instance_computation_requirement'], unit.cpu_usage
    ) * computation_jitter
  retention = retention_cost(data_size, config) * rng.uniform(low, high)
  transfer = transfer_cost(data_size, unit.network_latency) * rng.uniform(low, high)
  latency = transfer_latency(
      data_size, unit.network_latency + config['instance_latency_offset']
  ) * rng.uniform(low, high)

  cost = (
      weights['computation'] * computation
      + weights['retention'] * retention
      + weights['transfer'] * transfer
      + weights['latency'] * latency
  )
  return cost, latency
