# workload_generators.py
"""Randomness sources and workload jitter applied before each tick.

The simulator core never creates its own generator: callers inject either a
seeded numpy Generator (make_rng) or a FixedRandomSource, which never
advances and so makes every run byte-identical.
"""

from typing import Any, Dict, Optional, Sequence

import numpy as np

from placement_tools.config import SIMULATION_CONFIG
from placement_tools.data_structures import ResourceUnit, ServiceRequest


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
  """Seedable randomness source shared by jitter and exploration call sites."""
  return np.random.default_rng(seed)


class FixedRandomSource:
  """Non-advancing stand-in for numpy.random.Generator.

  uniform(low, high) always returns low + fraction * (high - low) and
  integers(low, high) always returns low.
  """

  def __init__(self, fraction: float = 0.5):
    if not 0.0 <= fraction <= 1.0:
      raise ValueError(f'fraction must be in [0, 1], got {fraction}')
    self.fraction = fraction

  def uniform(self, low: float = 0.0, high: float = 1.0) -> float:
    return low + self.fraction * (high - low)

  def integers(self, low: int, high: Optional[int] = None) -> int:
    if high is None:
      return 0
    return low


def _variation(rng, variation_range) -> float:
  """Multiplicative factor drawn from variation_range; fixed ranges skip the draw."""
  min_rand, max_rand = variation_range
  if min_rand == max_rand:
    return float(min_rand)
  return float(rng.uniform(min_rand, max_rand))


def apply_request_jitter(
    requests: Sequence[ServiceRequest],
    rng,
    config: Dict[str, Any] = SIMULATION_CONFIG,
) -> None:
  """Scales each request's computation load and transfer cost by one draw."""
  for request in requests:
    y = _variation(rng, config['request_jitter_range'])
    request.computation_load *= y
    request.transfer_cost *= y


def apply_unit_jitter(
    units: Sequence[ResourceUnit],
    rng,
    config: Dict[str, Any] = SIMULATION_CONFIG,
) -> None:
  """Scales each unit's computation and retention cost by independent draws."""
  for unit in units:
    unit.computation_cost *= _variation(rng, config['unit_jitter_range'])
    unit.retention_cost *= _variation(rng, config['unit_jitter_range'])
