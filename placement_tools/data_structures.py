"""Defines the basic data structures for Resource Units, Service Requests and Containers.

ResourceUnit merges the capacity/cost view used by the cost-minimizing
placement with the CPU/bandwidth/layer view used by the feature-scored
placement. FunctionInstance refers to its host by index, never by object.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Tuple


@dataclass
class ResourceUnit:
  """Represents an edge/fog compute unit (RSU, edge node or cloud server)."""
  id: int
  max_capacity: float
  used_capacity: float = 0.0
  computation_cost: float = 0.0  # Cost per unit of computation load
  retention_cost: float = 0.0  # Cost of keeping cached state warm
  preparation_cost: float = 0.0
  network_latency: float = 0.0  # RTT in ms
  cpu_usage: float = 0.0  # Percent, 0-100
  replicas: int = 1
  max_replicas: int = 1
  min_replicas: int = 1
  cpu_frequency: float = 1.0  # GHz
  bandwidth: float = 1.0
  storage_capacity: float = 0.0
  max_containers: int = 0
  local_layers: List[int] = field(default_factory=list)

  def spare_capacity(self) -> float:
    return self.max_capacity - self.used_capacity

  def can_fit(self, amount: float) -> bool:
    return self.used_capacity + amount <= self.max_capacity


@dataclass
class ServiceRequest:
  """Represents a latency-constrained workload issued against the units."""
  id: int
  deadline: float
  computation_load: float
  transfer_cost: float
  preparation_cost: float
  demand: float = 0.0  # Capacity consumed by a transfer decision
  distance_to_unit: float = 0.0
  function_name: Optional[str] = None  # Function served by the lifecycle manager
  requested_image: Optional[int] = None  # Image id for feature-scored placement
  data_size: float = 0.0
  computation_requirement: float = 0.0


@dataclass
class PrefetchBundle:
  """A service bundle that may be staged on a unit ahead of demand."""
  id: int
  size: float
  prefetch_cost: float


@dataclass
class Layer:
  id: int
  size: float
  exists_locally: bool = False
  download_time: float = 0.0


@dataclass
class ContainerImage:
  """An image as an ordered collection of layer ids."""
  id: int
  layers: List[int] = field(default_factory=list)


class ContainerState(enum.Enum):
  PRIVATE = 'private'
  ZYGOTE = 'zygote'
  HELPER = 'helper'


@dataclass
class Container:
  """A function container owned by its function's pool."""
  function_name: str
  state: ContainerState = ContainerState.PRIVATE
  idle: bool = True
  origin_function: Optional[str] = None  # Set for helpers forked from another pool


@dataclass
class FunctionInstance:
  """A live instance of a function; unit_index points into the unit list."""
  id: str
  function_name: str
  unit_index: int


@dataclass
class Assignment:
  request_id: int
  unit_id: int
  decision_cost: float = 0.0


class WeightVector(NamedTuple):
  """Ordered (computation, retention, transfer, preparation) weights."""
  computation: float
  retention: float
  transfer: float
  preparation: float


@dataclass(frozen=True)
class WeightAdapterState:
  """Load/weights remembered between ticks, threaded through by the caller."""
  previous_load: float = 0.0
  previous_weights: WeightVector = WeightVector(0.5, 0.2, 0.2, 0.1)


@dataclass
class TickRecord:
  """Per-tick metrics record emitted by the simulator."""
  tick: int
  total_cost: float
  total_latency: float  # Modeled latency, microseconds
  assignments: List[Tuple[int, int]]
  retained: List[Tuple[int, bool]]
  replicas: List[Tuple[int, int]]
  starved: List[int] = field(default_factory=list)
  load: float = 0.0
  weights: Optional[WeightVector] = None
  decision_cost: float = 0.0
  prefetched: List[Tuple[int, int]] = field(default_factory=list)
  transfers: List[Tuple[int, int]] = field(default_factory=list)
  routing: Dict[str, Dict[str, float]] = field(default_factory=dict)
  new_instance_unit: Optional[int] = None
  lifecycle_cost: float = 0.0
  instance_cost: float = 0.0
  unserved: List[str] = field(default_factory=list)  # Functions whose helper had no zygote
  container_states: Dict[str, Dict[str, int]] = field(default_factory=dict)

  def to_dict(self) -> Dict[str, Any]:
    return {
        'tick': self.tick,
        'totalCost': self.total_cost,
        'totalLatency': self.total_latency,
        'assignments': [list(a) for a in self.assignments],
        'retained': [list(r) for r in self.retained],
        'replicas': [list(r) for r in self.replicas],
        'starved': list(self.starved),
        'load': self.load,
        'weights': list(self.weights) if self.weights is not None else None,
        'decisionCost': self.decision_cost,
        'prefetched': [list(p) for p in self.prefetched],
        'transfers': [list(t) for t in self.transfers],
        'routing': self.routing,
        'newInstanceUnit': self.new_instance_unit,
        'lifecycleCost': self.lifecycle_cost,
        'instanceCost': self.instance_cost,
        'unserved': list(self.unserved),
        'containerStates': self.container_states,
    }


@dataclass
class SimulationResult:
  """Aggregate output of a run: per-tick records plus cumulative metrics."""
  records: List[TickRecord] = field(default_factory=list)
  cost_ledger: Dict[int, float] = field(default_factory=dict)
  cumulative_latency: float = 0.0

  @property
  def total_starved(self) -> int:
    return sum(len(r.starved) for r in self.records)

  def to_dict(self) -> Dict[str, Any]:
    return {
        'ticks': [r.to_dict() for r in self.records],
        'costLedger': {str(t): c for t, c in self.cost_ledger.items()},
        'cumulativeLatency': self.cumulative_latency,
        'totalStarved': self.total_starved,
    }
