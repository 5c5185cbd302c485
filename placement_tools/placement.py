"""Greedy placement of requests and prefetch bundles onto resource units.

All strategies are first-strict-improvement scans: a unit later in the list
only wins if it is strictly better, so equal scores keep the earliest unit.
Assignments are never revisited within a tick. consume() is the only
function that increases ResourceUnit.used_capacity.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from placement_tools import cost_model
from placement_tools.config import SIMULATION_CONFIG
from placement_tools.data_structures import (
    Assignment,
    ContainerImage,
    Layer,
    PrefetchBundle,
    ResourceUnit,
    ServiceRequest,
    WeightVector,
)
from placement_tools.exceptions import CapacityInvariantError

logger = logging.getLogger(__name__)


@dataclass
class PlacementResult:
  """Assignments made in one placement pass plus the requests left unplaced."""
  assignments: List[Assignment] = field(default_factory=list)
  starved: List[int] = field(default_factory=list)  # Request ids with no feasible unit

  @property
  def total_decision_cost(self) -> float:
    return sum(a.decision_cost for a in self.assignments)

  def as_pairs(self) -> List[Tuple[int, int]]:
    return [(a.request_id, a.unit_id) for a in self.assignments]


def unit_index(units: Sequence[ResourceUnit]) -> Dict[int, int]:
  """Maps unit id to its position in units."""
  return {unit.id: i for i, unit in enumerate(units)}


def consume(unit: ResourceUnit, amount: float) -> None:
  """Adds amount to unit's used capacity, enforcing used <= max."""
  if not unit.can_fit(amount):
    raise CapacityInvariantError(
        unit.id, unit.used_capacity, amount, unit.max_capacity
    )
  unit.used_capacity += amount


def place_min_cost(
    requests: Sequence[ServiceRequest],
    units: Sequence[ResourceUnit],
    weights: WeightVector,
) -> PlacementResult:
  """Assigns each request to the feasible unit with the lowest decision cost."""
  result = PlacementResult()
  for request in requests:
    best_unit = None
    min_cost = float('inf')
    for unit in units:
      if not unit.can_fit(request.computation_load):
        continue
      cost = cost_model.decision_cost(request, unit, weights)
      if cost < min_cost:
        min_cost = cost
        best_unit = unit

    if best_unit is None:
      logger.warning(
          'Request %s (load %.2f) starved: no unit has spare capacity',
          request.id, request.computation_load,
      )
      result.starved.append(request.id)
      continue

    consume(best_unit, request.computation_load)
    result.assignments.append(
        Assignment(request_id=request.id, unit_id=best_unit.id, decision_cost=min_cost)
    )
    logger.debug('Request %s -> unit %s (cost %.4f)', request.id, best_unit.id, min_cost)
  return result


def cached_layer_size(
    request: ServiceRequest,
    unit: ResourceUnit,
    images: Mapping[int, ContainerImage],
    layers: Mapping[int, Layer],
    rng,
    config: Dict[str, Any] = SIMULATION_CONFIG,
) -> float:
  """Sum of (jittered) sizes of the request's image layers cached on unit."""
  image = images.get(request.requested_image) if request.requested_image is not None else None
  if image is None:
    return 0.0
  low, high = config['layer_size_jitter']
  local = set(unit.local_layers)
  score = 0.0
  for layer_id in image.layers:
    if layer_id in local and layer_id in layers:
      score += layers[layer_id].size * rng.uniform(low, high)
  return score


def feature_score(
    request: ServiceRequest,
    unit: ResourceUnit,
    images: Mapping[int, ContainerImage],
    layers: Mapping[int, Layer],
    rng,
    config: Dict[str, Any] = SIMULATION_CONFIG,
) -> float:
  """Cached-layer affinity per unit of compute*bandwidth, with exploration noise."""
  overlap = cached_layer_size(request, unit, images, layers, rng, config)
  low, high = config['exploration_noise']
  random_factor = rng.uniform(low, high)
  denominator = unit.cpu_frequency * unit.bandwidth
  if denominator <= 0:
    return 0.0
  return (overlap / denominator) * random_factor


def select_feature_unit(
    request: ServiceRequest,
    units: Sequence[ResourceUnit],
    images: Mapping[int, ContainerImage],
    layers: Mapping[int, Layer],
    rng,
    policy: Optional[Mapping[int, float]] = None,
    is_eligible: Optional[Callable[[int, ResourceUnit], bool]] = None,
    config: Dict[str, Any] = SIMULATION_CONFIG,
) -> Optional[int]:
  """Returns the index of the highest-scoring unit, or None.

  Units without container slots or storage are never eligible. The policy
  score only separates units whose feature scores are exactly equal.
  """
  best_index = None
  best_score = float('-inf')
  best_prior = float('-inf')
  policy = policy or {}
  for i, unit in enumerate(units):
    if unit.max_containers <= 0 or unit.storage_capacity <= 0:
      continue
    if is_eligible is not None and not is_eligible(i, unit):
      continue
    score = feature_score(request, unit, images, layers, rng, config)
    prior = policy.get(unit.id, 0.0)
    if score > best_score or (score == best_score and prior > best_prior):
      best_index, best_score, best_prior = i, score, prior
  return best_index


def place_feature_scored(
    requests: Sequence[ServiceRequest],
    units: Sequence[ResourceUnit],
    images: Mapping[int, ContainerImage],
    layers: Mapping[int, Layer],
    weights: WeightVector,
    rng,
    policy: Optional[Mapping[int, float]] = None,
    config: Dict[str, Any] = SIMULATION_CONFIG,
) -> PlacementResult:
  """RL-flavoured greedy placement scored on cached image layers.

  Each unit accepts at most max_containers requests per pass and only
  requests whose load fits its spare capacity. Decision cost is still
  recorded with the adaptive weights so both strategies report alike.
  """
  result = PlacementResult()
  slots_used = [0] * len(units)
  for request in requests:
    index = select_feature_unit(
        request, units, images, layers, rng, policy,
        is_eligible=lambda i, u: (
            slots_used[i] < u.max_containers and u.can_fit(request.computation_load)
        ),
        config=config,
    )
    if index is None:
      logger.warning('Request %s starved: no eligible unit for feature-scored placement',
                     request.id)
      result.starved.append(request.id)
      continue
    unit = units[index]
    consume(unit, request.computation_load)
    slots_used[index] += 1
    result.assignments.append(Assignment(
        request_id=request.id,
        unit_id=unit.id,
        decision_cost=cost_model.decision_cost(request, unit, weights),
    ))
  return result


def prefetch_bundles(
    units: Sequence[ResourceUnit], bundles: Sequence[PrefetchBundle]
) -> List[Tuple[int, int]]:
  """First-fit staging of bundles into each unit's remaining capacity.

  A bundle may be staged on several units. Returns (bundle_id, unit_id).
  """
  staged = []
  for unit in units:
    for bundle in bundles:
      if unit.can_fit(bundle.size):
        consume(unit, bundle.size)
        staged.append((bundle.id, unit.id))
  if staged:
    logger.debug('Prefetched %d bundle placements', len(staged))
  return staged


def transfer_requests(
    requests: Sequence[ServiceRequest],
    units: Sequence[ResourceUnit],
    config: Dict[str, Any] = SIMULATION_CONFIG,
) -> List[Tuple[int, int]]:
  """Chooses a transfer target per request by distance and current workload.

  Consumes each request's demand on the chosen unit. Returns
  (request_id, unit_id) for requests that found a target.
  """
  transfers = []
  for request in requests:
    best_unit = None
    min_cost = float('inf')
    for unit in units:
      if not unit.can_fit(request.demand):
        continue
      cost = cost_model.transfer_choice_cost(request, unit, config)
      if cost < min_cost:
        min_cost = cost
        best_unit = unit
    if best_unit is not None:
      consume(best_unit, request.demand)
      transfers.append((request.id, best_unit.id))
  return transfers
