"""Discrete-tick control loop tying the placement components together.

Each tick runs to completion before the next starts:
  jitter -> load -> weights -> prefetch -> placement -> transfers ->
  retention -> autoscaling -> routing -> container lifecycle -> metrics
The loop is the single writer of unit capacity and container pools.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from tqdm import tqdm

from placement_tools import cost_model
from placement_tools.autoscaler import find_best_placement, scale_units
from placement_tools.config import (
    PLACEMENT_STRATEGIES,
    WEIGHT_STRATEGIES,
    make_config,
    retention_threshold,
)
from placement_tools.data_structures import SimulationResult, TickRecord, WeightAdapterState
from placement_tools.exceptions import ConfigurationError
from placement_tools.ilp_solver import solve_placement_ilp
from placement_tools.lifecycle import (
    ContainerLifecycleManager,
    FunctionDependencyGraph,
    InvocationOutcome,
)
from placement_tools.placement import (
    PlacementResult,
    place_feature_scored,
    place_min_cost,
    prefetch_bundles,
    transfer_requests,
    unit_index,
)
from placement_tools.policy import PolicyScore, optimize_policy, update_online
from placement_tools.retention import decide_retention
from placement_tools.routing import routing_weights
from placement_tools.topology import Topology
from placement_tools.weight_adapter import compute_weights, system_load
from placement_tools.workload_generators import apply_request_jitter, apply_unit_jitter, make_rng

logger = logging.getLogger(__name__)


@dataclass
class SimulationParameters:
  """Run parameters. None means "use the value from the config"."""
  ticks: int = 5
  seed: Optional[int] = None
  weight_strategy: str = 'slope'
  placement_strategy: str = 'min_cost'
  retention_threshold: Optional[float] = None
  pressure_threshold_high: Optional[float] = None
  pressure_threshold_low: Optional[float] = None
  reset_capacity_each_tick: Optional[bool] = None
  prefetch: bool = True
  transfers: bool = True
  progress: bool = False


def _resolve_config(params: SimulationParameters,
                    config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
  overrides = {}
  if params.pressure_threshold_high is not None:
    overrides['pressure_threshold_high'] = params.pressure_threshold_high
  if params.pressure_threshold_low is not None:
    overrides['pressure_threshold_low'] = params.pressure_threshold_low
  if params.reset_capacity_each_tick is not None:
    overrides['reset_capacity_each_tick'] = params.reset_capacity_each_tick
  if config is None:
    return make_config(overrides)
  resolved = copy.deepcopy(config)
  resolved.update(overrides)
  return make_config(resolved)


def _validate_parameters(params: SimulationParameters) -> None:
  if params.ticks < 0:
    raise ConfigurationError(f'ticks must be non-negative, got {params.ticks}')
  if params.weight_strategy not in WEIGHT_STRATEGIES:
    raise ConfigurationError(
        f'Unknown weight strategy {params.weight_strategy!r};'
        f' expected one of {WEIGHT_STRATEGIES}'
    )
  if params.placement_strategy not in PLACEMENT_STRATEGIES:
    raise ConfigurationError(
        f'Unknown placement strategy {params.placement_strategy!r};'
        f' expected one of {PLACEMENT_STRATEGIES}'
    )


class Simulation:
  """One run over a private copy of a topology."""

  def __init__(
      self,
      topology: Topology,
      params: SimulationParameters,
      config: Optional[Dict[str, Any]] = None,
      rng=None,
  ):
    _validate_parameters(params)
    self.params = params
    self.config = _resolve_config(params, config)
    self.rng = rng if rng is not None else make_rng(params.seed)
    self.topology = copy.deepcopy(topology)
    self.units = self.topology.units
    self.threshold = (
        params.retention_threshold
        if params.retention_threshold is not None
        else retention_threshold(self.config)
    )
    self.weight_state = WeightAdapterState()
    self.lifecycle = ContainerLifecycleManager(
        FunctionDependencyGraph(self.topology.dependencies), self.rng, self.config
    )
    for container in self.topology.containers:
      self.lifecycle.pool(container.function_name).append(container)
    self.policy: PolicyScore = {}
    self.result = SimulationResult()

  def prepare_policy(self) -> None:
    """Offline policy pass, run once before the first tick."""
    if self.params.placement_strategy != 'feature_scored':
      return
    self.policy = optimize_policy(
        self.topology.requests, self.units, self.topology.images,
        self.topology.layers, self.rng, self.config,
    )

  def _place(self, weights) -> PlacementResult:
    requests = self.topology.requests
    strategy = self.params.placement_strategy
    if strategy == 'feature_scored':
      return place_feature_scored(
          requests, self.units, self.topology.images, self.topology.layers,
          weights, self.rng, self.policy, self.config,
      )
    if strategy == 'ilp':
      result = solve_placement_ilp(requests, self.units, weights)
      if result is not None:
        return result
      logger.warning('ILP placement failed; falling back to greedy min-cost')
    return place_min_cost(requests, self.units, weights)

  def run_tick(self, tick: int) -> TickRecord:
    config = self.config
    units = self.units
    requests = self.topology.requests

    if config['reset_capacity_each_tick']:
      for unit in units:
        unit.used_capacity = 0.0

    apply_request_jitter(requests, self.rng, config)
    apply_unit_jitter(units, self.rng, config)

    load = system_load(units)
    weights, self.weight_state = compute_weights(
        self.params.weight_strategy, load, self.weight_state, config
    )

    staged = []
    if self.params.prefetch and self.topology.bundles:
      staged = prefetch_bundles(units, self.topology.bundles)

    placement = self._place(weights)
    transfers = transfer_requests(requests, units, config) if self.params.transfers else []

    retained = decide_retention(units, load, self.threshold, config['retention_max_load'])

    scale_units(units, config)
    best_index = find_best_placement(units, config)
    new_instance_unit = units[best_index].id if best_index is not None else None

    routing = routing_weights(self.topology.instances, units, config)

    self.lifecycle.identify_idle_containers(tick)
    by_id = {r.id: r for r in requests}
    invoked = []
    for assignment in placement.assignments:
      function_name = by_id[assignment.request_id].function_name
      if function_name is not None and function_name not in invoked:
        invoked.append(function_name)
    unserved = []
    for function_name in invoked:
      if self.lifecycle.invoke(function_name, tick) is InvocationOutcome.UNSERVED:
        unserved.append(function_name)
    if self.lifecycle.pools:
      self.lifecycle.balance(tick)

    if self.params.placement_strategy == 'feature_scored' and config['policy_online_updates']:
      self.policy = update_online(self.policy, placement.assignments, tick, config)

    # --- Metrics ---
    index_of = unit_index(units)
    bundles_by_id = {b.id: b for b in self.topology.bundles}
    placement_cost = 0.0
    total_latency = 0.0
    for assignment in placement.assignments:
      request, unit = by_id[assignment.request_id], units[index_of[assignment.unit_id]]
      placement_cost += cost_model.reporting_cost(request, unit, config)
      total_latency += cost_model.request_latency(request, unit)
    prefetch_total = sum(
        cost_model.prefetch_cost(bundles_by_id[bundle_id], config) for bundle_id, _ in staged
    )
    instance_total = 0.0
    for function_instances in self.topology.instances.values():
      for inst in function_instances:
        cost, latency = cost_model.instance_cost(units[inst.unit_index], self.rng, config)
        instance_total += cost
        total_latency += latency * 1e6  # seconds -> microseconds
    lifecycle_cost = self.lifecycle.tick_cost(tick)

    record = TickRecord(
        tick=tick,
        total_cost=placement_cost + prefetch_total + instance_total + lifecycle_cost,
        total_latency=total_latency,
        assignments=placement.as_pairs(),
        retained=sorted(retained.items()),
        replicas=[(u.id, u.replicas) for u in units],
        starved=list(placement.starved),
        load=load,
        weights=weights,
        decision_cost=placement.total_decision_cost,
        prefetched=staged,
        transfers=transfers,
        routing=routing,
        new_instance_unit=new_instance_unit,
        lifecycle_cost=lifecycle_cost,
        instance_cost=instance_total,
        unserved=unserved,
        container_states=self.lifecycle.state_counts(),
    )
    logger.debug('Tick %d: cost=%.4f latency=%.4f starved=%s',
                 tick, record.total_cost, record.total_latency, record.starved)
    return record

  def run(self) -> SimulationResult:
    self.prepare_policy()
    for tick in tqdm(range(self.params.ticks), desc='Simulating ticks',
                     disable=not self.params.progress):
      record = self.run_tick(tick)
      self.result.records.append(record)
      self.result.cost_ledger[tick] = record.total_cost
      self.result.cumulative_latency += record.total_latency
    return self.result


def run_simulation(
    topology: Topology,
    params: Optional[SimulationParameters] = None,
    config: Optional[Dict[str, Any]] = None,
    rng=None,
) -> SimulationResult:
  """Runs params.ticks ticks over a copy of topology and returns the metrics."""
  return Simulation(topology, params or SimulationParameters(), config, rng).run()


def metrics_stream(result: SimulationResult) -> List[Dict[str, Any]]:
  return [record.to_dict() for record in result.records]
