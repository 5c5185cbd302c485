"""Derives the 4-component cost weight vector from current cluster load.

Two interchangeable strategies:
  * slope: bucketed by load, medium/high buckets perturbed by the relative
    load change since the previous tick.
  * logistic: sigmoid per component with increasing offsets, so emphasis
    moves smoothly from computation towards preparation as load rises.
Both return weights normalized to sum to 1.
"""

import logging
import math
from typing import Any, Dict, Sequence, Tuple

from placement_tools.config import SIMULATION_CONFIG
from placement_tools.data_structures import ResourceUnit, WeightAdapterState, WeightVector
from placement_tools.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def sigmoid(x: float) -> float:
  if x >= 0:
    return 1.0 / (1.0 + math.exp(-x))
  z = math.exp(x)  # Avoids overflow for large negative x
  return z / (1.0 + z)


def system_load(units: Sequence[ResourceUnit]) -> float:
  """Ratio of total used capacity to total maximum capacity."""
  total_capacity = sum(u.max_capacity for u in units)
  if total_capacity <= 0:
    return 0.0
  return sum(u.used_capacity for u in units) / total_capacity


def _normalize(weights: Sequence[float]) -> WeightVector:
  total = sum(weights)
  return WeightVector(*(w / total for w in weights))


def load_slope(load: float, previous_load: float) -> float:
  """Relative load change; 0 when there is no previous load."""
  if previous_load == 0.0:
    return 0.0
  return (load - previous_load) / previous_load


def slope_weights(
    load: float,
    state: WeightAdapterState,
    config: Dict[str, Any] = SIMULATION_CONFIG,
) -> Tuple[WeightVector, WeightAdapterState]:
  """Computes slope-adapted weights and the state for the next tick."""
  slope = load_slope(load, state.previous_load)

  if load <= config['low_load_bound']:
    raw = list(config['low_load_weights'])
  else:
    if load <= config['medium_load_bound']:
      base, factors = config['medium_load_base'], config['medium_load_slope_factors']
    else:
      base, factors = config['high_load_base'], config['high_load_slope_factors']
    raw = [b + slope * k for b, k in zip(base, factors)]

  if config['clamp_negative_weights']:
    raw = [max(0.0, w) for w in raw]
  if sum(raw) <= 0.0:
    # Every component clamped away; fall back to the low-load vector.
    logger.debug('Slope %.3f zeroed all weights at load %.3f', slope, load)
    raw = list(config['low_load_weights'])

  weights = _normalize(raw)
  return weights, WeightAdapterState(previous_load=load, previous_weights=weights)


def logistic_weights(
    load: float, config: Dict[str, Any] = SIMULATION_CONFIG
) -> WeightVector:
  gamma = config['logistic_gamma']
  delta = config['logistic_delta']
  raw = [sigmoid(gamma * (load - delta - offset))
         for offset in config['logistic_offsets']]
  return _normalize(raw)


def compute_weights(
    strategy: str,
    load: float,
    state: WeightAdapterState,
    config: Dict[str, Any] = SIMULATION_CONFIG,
) -> Tuple[WeightVector, WeightAdapterState]:
  """Dispatches to the selected strategy. The logistic variant keeps no history
  but still records the load so strategies can be swapped mid-run."""
  if strategy == 'slope':
    weights, new_state = slope_weights(load, state, config)
  elif strategy == 'logistic':
    weights = logistic_weights(load, config)
    new_state = WeightAdapterState(previous_load=load, previous_weights=weights)
  else:
    raise ConfigurationError(f'Unknown weight strategy: {strategy}')
  logger.debug('Weights (%s, load=%.3f): %s', strategy, load, weights)
  return weights, new_state
