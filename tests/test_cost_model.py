import math

import pytest

from placement_tools import cost_model
from placement_tools.data_structures import PrefetchBundle, WeightVector
from placement_tools.workload_generators import FixedRandomSource

from conftest import make_request, make_unit


def test_decision_cost_at_low_load():
  unit = make_unit(max_capacity=100.0, computation_cost=0.03, retention_cost=0.02)
  request = make_request(computation_load=25.0, transfer_cost=0.025, preparation_cost=0.02)
  weights = WeightVector(0.5, 0.2, 0.2, 0.1)
  expected = 0.5 * 0.03 * 25 + 0.2 * 0.02 + 0.2 * 0.025 + 0.1 * 0.02
  assert cost_model.decision_cost(request, unit, weights) == pytest.approx(expected)
  assert expected == pytest.approx(0.386)


def test_reporting_cost_uses_fixed_weights(config):
  unit = make_unit(computation_cost=0.03, retention_cost=0.02)
  request = make_request(computation_load=25.0, transfer_cost=0.025, preparation_cost=0.02)
  expected = 0.3 * 0.03 * 25 + 0.3 * 0.02 + 0.3 * 0.025
  assert cost_model.reporting_cost(request, unit, config) == pytest.approx(expected)


def test_decision_and_reporting_lenses_diverge(config):
  unit = make_unit()
  request = make_request()
  weights = WeightVector(0.5, 0.2, 0.2, 0.1)
  assert cost_model.decision_cost(request, unit, weights) != pytest.approx(
      cost_model.reporting_cost(request, unit, config))


def test_transfer_cost_guards_zero_denominator():
  assert cost_model.transfer_cost(10.0, 0.0) == pytest.approx(10.0)
  assert cost_model.transfer_cost(10.0, 4.0) == pytest.approx(2.0)
  assert cost_model.transfer_cost(1.0, bandwidth=-2.0, distance=1.0) == cost_model.UNREACHABLE_COST


def test_transfer_latency():
  assert cost_model.transfer_latency(10.0, 4.0) == pytest.approx(2.5)
  assert math.isinf(cost_model.transfer_latency(10.0, 0.0))


def test_computation_and_retention_cost(config):
  assert cost_model.computation_cost(1000.0, 50.0) == pytest.approx(20.0)
  assert math.isinf(cost_model.computation_cost(1000.0, 0.0))
  assert cost_model.retention_cost(0.02, config) == 0.05
  assert cost_model.retention_cost(1.0, config) == 0.1


def test_prefetch_cost(config):
  assert cost_model.prefetch_cost(PrefetchBundle(id=0, size=10.0, prefetch_cost=2.0), config) == pytest.approx(0.1)


def test_request_latency():
  unit = make_unit(computation_cost=0.02)
  request = make_request(computation_load=10.0, transfer_cost=0.5)
  assert cost_model.request_latency(request, unit) == pytest.approx(0.7)


def test_transfer_choice_cost_penalizes_full_units(config):
  request = make_request(distance_to_unit=5.0)
  empty = make_unit(0, max_capacity=100.0, used_capacity=0.0)
  half = make_unit(1, max_capacity=100.0, used_capacity=50.0)
  assert cost_model.transfer_choice_cost(request, empty, config) == pytest.approx(5.0)
  assert cost_model.transfer_choice_cost(request, half, config) == pytest.approx(5.05)


def test_instance_cost_with_fixed_randomness(config):
  unit = make_unit(cpu_usage=50.0, network_latency=50.0)
  cost, latency = cost_model.instance_cost(unit, FixedRandomSource(0.0), config)
  jitter = 0.01
  expected_latency = 0.02 / 100.0 * jitter
  expected_cost = (0.3 * (1000.0 / 50.0) * jitter
                   + 0.1 * 0.05 * jitter
                   + 0.3 * (0.02 / 51.0) * jitter
                   + 0.4 * expected_latency)
  assert latency == pytest.approx(expected_latency)
  assert cost == pytest.approx(expected_cost)


def test_idle_host_adds_no_computation_cost(config):
  unit = make_unit(cpu_usage=0.0, network_latency=50.0)
  cost, latency = cost_model.instance_cost(unit, FixedRandomSource(0.0), config)
  jitter = 0.01
  assert math.isfinite(cost)
  assert cost == pytest.approx(0.1 * 0.05 * jitter
                               + 0.3 * (0.02 / 51.0) * jitter
                               + 0.4 * latency)
