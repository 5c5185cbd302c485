"""Additive policy score used as a tie-breaking prior by feature-scored placement.

Scores only ever increase. optimize_policy is the offline pass run once
before the tick loop; update_online folds the same increment into each tick
when policy_online_updates is enabled.
"""

import logging
from typing import Any, Dict, Mapping, Sequence

from placement_tools.config import SIMULATION_CONFIG
from placement_tools.data_structures import Assignment, ContainerImage, Layer, ResourceUnit, ServiceRequest
from placement_tools.placement import select_feature_unit

logger = logging.getLogger(__name__)

# Type Aliases
PolicyScore = Dict[int, float]  # unit_id -> accumulated score


def optimize_policy(
    requests: Sequence[ServiceRequest],
    units: Sequence[ResourceUnit],
    images: Mapping[int, ContainerImage],
    layers: Mapping[int, Layer],
    rng,
    config: Dict[str, Any] = SIMULATION_CONFIG,
    policy: PolicyScore = None,
) -> PolicyScore:
  """Repeatedly schedules every request and rewards the chosen unit by lr/(i+1)."""
  policy = dict(policy) if policy else {}
  learning_rate = config['policy_learning_rate']
  iterations = config['policy_iterations']
  for i in range(iterations):
    for request in requests:
      index = select_feature_unit(
          request, units, images, layers, rng, policy, config=config
      )
      if index is not None:
        unit_id = units[index].id
        policy[unit_id] = policy.get(unit_id, 0.0) + learning_rate * (1.0 / (i + 1))
  logger.info('Offline policy optimization finished after %d iterations: %s',
              iterations, policy)
  return policy


def update_online(
    policy: PolicyScore,
    assignments: Sequence[Assignment],
    tick: int,
    config: Dict[str, Any] = SIMULATION_CONFIG,
) -> PolicyScore:
  """Returns a new policy crediting each assigned unit with lr/(tick+1)."""
  updated = dict(policy)
  increment = config['policy_learning_rate'] * (1.0 / (tick + 1))
  for assignment in assignments:
    updated[assignment.unit_id] = updated.get(assignment.unit_id, 0.0) + increment
  return updated
