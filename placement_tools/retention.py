"""Per-unit keep/evict decision for cached state."""

from typing import Dict, Sequence

from placement_tools.data_structures import ResourceUnit


def should_retain(load: float, retention_cost: float, threshold: float,
                  max_load: float = 0.7) -> bool:
  return load <= max_load and retention_cost <= threshold


def decide_retention(
    units: Sequence[ResourceUnit],
    load: float,
    threshold: float,
    max_load: float = 0.7,
) -> Dict[int, bool]:
  """Retain a unit's containers under moderate load when retention is cheap.

  Stateless: the result depends only on the arguments.
  """
  return {
      unit.id: should_retain(load, unit.retention_cost, threshold, max_load)
      for unit in units
  }
