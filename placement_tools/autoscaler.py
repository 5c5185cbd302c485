"""Pressure-based replica scaling with hysteresis bounds."""

import enum
import logging
from typing import Any, Dict, Optional, Sequence

from placement_tools.config import SIMULATION_CONFIG
from placement_tools.data_structures import ResourceUnit
from placement_tools.pressure import unit_pressure

logger = logging.getLogger(__name__)


class ScalingAction(enum.Enum):
  UP = 'up'
  DOWN = 'down'
  HOLD = 'hold'


def scaling_decision(
    unit: ResourceUnit, pressure: float, threshold_high: float, threshold_low: float
) -> ScalingAction:
  if pressure > threshold_high and unit.replicas < unit.max_replicas:
    return ScalingAction.UP
  if pressure < threshold_low and unit.replicas > unit.min_replicas:
    return ScalingAction.DOWN
  return ScalingAction.HOLD


def scale_units(
    units: Sequence[ResourceUnit], config: Dict[str, Any] = SIMULATION_CONFIG
) -> Dict[int, ScalingAction]:
  """Adjusts each unit's replica count by at most one and returns the actions."""
  actions = {}
  for unit in units:
    pressure = unit_pressure(unit, config)
    action = scaling_decision(
        unit, pressure,
        config['pressure_threshold_high'], config['pressure_threshold_low'],
    )
    if action is ScalingAction.UP:
      unit.replicas += 1
      logger.info('Scaling UP unit %s to %d replicas (pressure %.3f)',
                  unit.id, unit.replicas, pressure)
    elif action is ScalingAction.DOWN:
      unit.replicas -= 1
      logger.info('Scaling DOWN unit %s to %d replicas (pressure %.3f)',
                  unit.id, unit.replicas, pressure)
    actions[unit.id] = action
  return actions


def find_best_placement(
    units: Sequence[ResourceUnit], config: Dict[str, Any] = SIMULATION_CONFIG
) -> Optional[int]:
  """Index of the unit with the lowest pressure below threshold_high that
  still has a free replica slot, or None."""
  best_index = None
  lowest_pressure = config['pressure_threshold_high']
  for i, unit in enumerate(units):
    if unit.replicas >= unit.max_replicas:
      continue
    pressure = unit_pressure(unit, config)
    if pressure < lowest_pressure:
      lowest_pressure = pressure
      best_index = i
  return best_index
