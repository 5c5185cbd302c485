import pytest

from placement_tools.data_structures import ContainerState
from placement_tools.lifecycle import ContainerLifecycleManager, FunctionDependencyGraph, InvocationOutcome
from placement_tools.workload_generators import FixedRandomSource

# FixedRandomSource(0.5) draws 0.2 from the default (0.1, 0.3) variation range.
VARIATION = 0.2


@pytest.fixture
def manager(config):
  graph = FunctionDependencyGraph()
  graph.add_mutual('FunctionA', 'FunctionB')
  mgr = ContainerLifecycleManager(graph, FixedRandomSource(0.5), config)
  mgr.add_container('FunctionA')
  mgr.add_container('FunctionB')
  return mgr


def test_graph_supports_asymmetric_edges():
  graph = FunctionDependencyGraph([('A', 'B')])
  assert graph.helpers_for('B') == ['A']
  assert graph.helpers_for('A') == []
  graph.add_edge('A', 'B')
  assert graph.edges() == [('A', 'B')]


def test_manager_requires_randomness_source(config):
  with pytest.raises(ValueError):
    ContainerLifecycleManager(FunctionDependencyGraph(), None, config)


def test_idle_private_containers_become_zygotes(manager):
  assert manager.identify_idle_containers(0) == 2
  assert all(c.state is ContainerState.ZYGOTE for pool in manager.pools.values() for c in pool)
  assert manager.tick_cost(0) == pytest.approx(2 * (0.1 + VARIATION))
  assert manager.identify_idle_containers(1) == 0


def test_overloaded_function_forks_helper_zygote(manager):
  manager.identify_idle_containers(0)
  assert manager.invoke('FunctionA', 0) is InvocationOutcome.FORKED
  helpers = [c for c in manager.pool('FunctionA') if c.state is ContainerState.HELPER]
  assert len(helpers) == 1
  assert helpers[0].origin_function == 'FunctionB'
  assert not helpers[0].idle
  assert manager.tick_cost(0) == pytest.approx(2 * (0.1 + VARIATION) + 0.05 + VARIATION)


def test_running_container_serves_warm(manager):
  manager.identify_idle_containers(0)
  manager.invoke('FunctionA', 0)
  assert manager.invoke('FunctionA', 1) is InvocationOutcome.WARM
  assert manager.tick_cost(1) == pytest.approx(0.02 + VARIATION)


def test_unrelated_function_gets_new_private_container(config):
  mgr = ContainerLifecycleManager(FunctionDependencyGraph(), FixedRandomSource(0.5), config)
  mgr.add_container('FunctionA')
  assert mgr.select_helper('FunctionC') is None
  assert mgr.invoke('FunctionC', 0) is InvocationOutcome.COLD
  pool = mgr.pool('FunctionC')
  assert len(pool) == 1
  assert pool[0].state is ContainerState.PRIVATE
  assert not any(c.state is ContainerState.HELPER for p in mgr.pools.values() for c in p)
  assert mgr.tick_cost(0) == pytest.approx(0.3 + VARIATION)


def test_helper_without_zygote_leaves_invocation_unserved(manager):
  # No idle detection yet, so FunctionB has no zygote to fork.
  assert manager.invoke('FunctionA', 0) is InvocationOutcome.UNSERVED
  assert len(manager.pool('FunctionA')) == 1
  assert manager.tick_cost(0) == 0.0


def test_declared_helper_never_triggers_cold_start(config):
  mgr = ContainerLifecycleManager(FunctionDependencyGraph([('B', 'A')]),
                                  FixedRandomSource(0.5), config)
  assert mgr.invoke('A', 0) is InvocationOutcome.UNSERVED
  assert mgr.pool('A') == []
  assert mgr.cost_ledger == {}


def test_cold_start_is_most_expensive_path(config):
  graph = FunctionDependencyGraph([('A', 'B')])
  forked = ContainerLifecycleManager(graph, FixedRandomSource(0.5), config)
  forked.add_container('A', ContainerState.ZYGOTE)
  forked.invoke('B', 0)
  cold = ContainerLifecycleManager(FunctionDependencyGraph(), FixedRandomSource(0.5), config)
  cold.invoke('B', 0)
  assert cold.tick_cost(0) > forked.tick_cost(0)


def test_costs_are_ledgered_per_tick(manager):
  manager.balance(0)
  manager.balance(2)
  assert set(manager.cost_ledger) == {0, 2}
  assert manager.tick_cost(1) == 0.0


def test_state_counts(manager):
  manager.identify_idle_containers(0)
  manager.invoke('FunctionA', 0)
  counts = manager.state_counts()
  assert counts['FunctionA'] == {'private': 0, 'zygote': 1, 'helper': 1}
  assert counts['FunctionB'] == {'private': 0, 'zygote': 1, 'helper': 0}
