import pytest

from placement_tools.config import make_config
from placement_tools.data_structures import Assignment, ContainerImage, Layer
from placement_tools.policy import optimize_policy, update_online
from placement_tools.retention import decide_retention, should_retain
from placement_tools.workload_generators import FixedRandomSource

from conftest import make_request, make_unit


def test_offline_policy_rewards_chosen_unit():
  config = make_config({'policy_iterations': 3})
  units = [
      make_unit(0, cpu_frequency=1.2, bandwidth=100.0, storage_capacity=15.0,
                max_containers=10, local_layers=[1, 2]),
      make_unit(1, cpu_frequency=0.9, bandwidth=80.0, storage_capacity=10.0,
                max_containers=8, local_layers=[3]),
  ]
  images = {0: ContainerImage(0, [1, 2])}
  layers = {1: Layer(1, 2.5), 2: Layer(2, 3.0), 3: Layer(3, 1.5)}
  policy = optimize_policy([make_request(0, requested_image=0)], units, images, layers,
                           FixedRandomSource(0.5), config)
  assert policy == {0: pytest.approx(0.01 * (1 + 1 / 2 + 1 / 3))}


def test_offline_policy_never_decreases_existing_scores():
  config = make_config({'policy_iterations': 2})
  units = [make_unit(0, storage_capacity=1.0, max_containers=1)]
  policy = optimize_policy([make_request(0)], units, {}, {}, FixedRandomSource(0.5), config,
                           policy={0: 1.0, 9: 2.0})
  assert policy[0] > 1.0
  assert policy[9] == 2.0


def test_online_update_returns_new_policy(config):
  policy = {0: 0.5}
  updated = update_online(policy, [Assignment(0, 0), Assignment(1, 2)], tick=1, config=config)
  assert policy == {0: 0.5}
  assert updated[0] == pytest.approx(0.505)
  assert updated[2] == pytest.approx(0.005)


def test_retention_rule():
  assert should_retain(0.5, 0.02, 0.5)
  assert not should_retain(0.8, 0.02, 0.5)
  assert not should_retain(0.5, 0.6, 0.5)
  assert should_retain(0.7, 0.5, 0.5)


def test_retention_decision_is_pure():
  units = [make_unit(0, retention_cost=0.02), make_unit(1, retention_cost=0.4),
           make_unit(2, retention_cost=0.6)]
  first = decide_retention(units, 0.5, threshold=0.3)
  second = decide_retention(units, 0.5, threshold=0.3)
  assert first == second == {0: True, 1: False, 2: False}
  assert decide_retention(units, 0.9, threshold=0.5) == {0: False, 1: False, 2: False}
