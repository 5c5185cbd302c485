"""Per-function container pools with zygote/helper forking.

State transitions within a tick:
  Private (idle)  -> Zygote                      identify_idle_containers
  Zygote of F     -> fork -> Helper serving G    fork_zygote(F, G)
An invocation of G is served warm by a running container of G. Otherwise a
helper function F is picked from the dependency graph and one of F's
zygotes is forked into a Helper for G. Only a function with no declared
helper cold-starts a new Private container, the most expensive path; if a
helper exists but has no zygote to fork, the invocation goes unserved.
Every transition adds base cost + U(lifecycle_cost_variation) to the ledger
entry for the current tick.
"""

import enum
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from placement_tools.config import SIMULATION_CONFIG
from placement_tools.data_structures import Container, ContainerState

logger = logging.getLogger(__name__)


class InvocationOutcome(enum.Enum):
  WARM = 'warm'
  FORKED = 'forked'
  COLD = 'cold'
  UNSERVED = 'unserved'  # A helper exists but has no zygote; nothing allocated


class FunctionDependencyGraph:
  """Directed "can help" relation: helpers_for(G) lists functions that may fork for G."""

  def __init__(self, edges: Iterable[Tuple[str, str]] = ()):
    self._helpers: Dict[str, List[str]] = {}
    for helper, target in edges:
      self.add_edge(helper, target)

  def add_edge(self, helper: str, target: str) -> None:
    """Declares that helper's zygotes may be forked to serve target."""
    candidates = self._helpers.setdefault(target, [])
    if helper not in candidates:
      candidates.append(helper)

  def add_mutual(self, a: str, b: str) -> None:
    self.add_edge(a, b)
    self.add_edge(b, a)

  def helpers_for(self, target: str) -> List[str]:
    return list(self._helpers.get(target, []))

  def edges(self) -> List[Tuple[str, str]]:
    return [(h, t) for t, helpers in self._helpers.items() for h in helpers]


class ContainerLifecycleManager:
  """Owns every function's container pool and the per-tick cost ledger."""

  def __init__(
      self,
      graph: Optional[FunctionDependencyGraph] = None,
      rng=None,
      config: Dict[str, Any] = SIMULATION_CONFIG,
  ):
    if rng is None:
      raise ValueError('ContainerLifecycleManager requires a randomness source.')
    self.graph = graph or FunctionDependencyGraph()
    self.rng = rng
    self.config = config
    self.pools: Dict[str, List[Container]] = {}
    self.cost_ledger: Dict[int, float] = {}

  def _transition_cost(self, base: float) -> float:
    low, high = self.config['lifecycle_cost_variation']
    return base + self.rng.uniform(low, high)

  def _charge(self, tick: int, cost: float) -> None:
    self.cost_ledger[tick] = self.cost_ledger.get(tick, 0.0) + cost

  def pool(self, function_name: str) -> List[Container]:
    return self.pools.setdefault(function_name, [])

  def add_container(
      self,
      function_name: str,
      state: ContainerState = ContainerState.PRIVATE,
      idle: bool = True,
  ) -> Container:
    container = Container(function_name=function_name, state=state, idle=idle)
    self.pool(function_name).append(container)
    return container

  def identify_idle_containers(self, tick: int) -> int:
    """Turns every idle Private container into a Zygote. Returns how many."""
    converted = 0
    for containers in self.pools.values():
      for container in containers:
        if container.idle and container.state is ContainerState.PRIVATE:
          container.state = ContainerState.ZYGOTE
          self._charge(tick, self._transition_cost(self.config['zygote_conversion_cost']))
          converted += 1
    if converted:
      logger.debug('Tick %d: %d idle containers became zygotes', tick, converted)
    return converted

  def select_helper(self, function_name: str) -> Optional[str]:
    """Uniformly random helper among the declared dependents, or None."""
    candidates = self.graph.helpers_for(function_name)
    if not candidates:
      return None
    return candidates[int(self.rng.integers(0, len(candidates)))]

  def fork_zygote(self, helper_function: str, target_function: str, tick: int) -> bool:
    """Forks one of helper_function's zygotes into a Helper for target_function."""
    for container in self.pool(helper_function):
      if container.state is ContainerState.ZYGOTE:
        helper = Container(
            function_name=target_function,
            state=ContainerState.HELPER,
            idle=False,
            origin_function=helper_function,
        )
        self.pool(target_function).append(helper)
        self._charge(tick, self._transition_cost(self.config['fork_cost']))
        logger.info('Tick %d: forked %s zygote into helper for %s',
                    tick, helper_function, target_function)
        return True
    return False

  def invoke(self, function_name: str, tick: int) -> InvocationOutcome:
    """Serves one invocation of function_name and charges its cost."""
    if any(not c.idle for c in self.pool(function_name)):
      self._charge(tick, self._transition_cost(self.config['warm_invocation_cost']))
      return InvocationOutcome.WARM

    helper_function = self.select_helper(function_name)
    if helper_function is not None:
      if self.fork_zygote(helper_function, function_name, tick):
        return InvocationOutcome.FORKED
      logger.warning('Tick %d: helper %s has no zygote to fork for %s',
                     tick, helper_function, function_name)
      return InvocationOutcome.UNSERVED

    self.add_container(function_name, ContainerState.PRIVATE, idle=True)
    self._charge(tick, self._transition_cost(self.config['cold_start_cost']))
    logger.info('Tick %d: cold start of new private container for %s', tick, function_name)
    return InvocationOutcome.COLD

  def balance(self, tick: int) -> None:
    """Charges the per-tick load balancing overhead."""
    self._charge(tick, self._transition_cost(self.config['balance_cost']))

  def tick_cost(self, tick: int) -> float:
    return self.cost_ledger.get(tick, 0.0)

  def state_counts(self) -> Dict[str, Dict[str, int]]:
    counts = {}
    for name, containers in self.pools.items():
      per_state = {state.value: 0 for state in ContainerState}
      for container in containers:
        per_state[container.state.value] += 1
      counts[name] = per_state
    return counts
