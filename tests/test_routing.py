import pytest

from placement_tools.data_structures import FunctionInstance
from placement_tools.routing import instance_weight, routing_weights
from placement_tools.weight_adapter import sigmoid

from conftest import make_unit


def test_instance_weight_formula(config):
  unit = make_unit(network_latency=50.0, cpu_usage=30.0)
  assert instance_weight(unit, config) == pytest.approx(sigmoid(0.2 * 15.0) * 0.7 * 100.0)


def test_latency_factor_floor(config):
  unit = make_unit(network_latency=0.0, cpu_usage=0.0)
  assert instance_weight(unit, config) == pytest.approx(1.0)


def test_shares_are_normalized_per_function(config):
  units = [make_unit(0, network_latency=50.0, cpu_usage=30.0),
           make_unit(1, network_latency=60.0, cpu_usage=40.0),
           make_unit(2, network_latency=150.0, cpu_usage=70.0)]
  instances = {
      'funcA': [FunctionInstance('inst1', 'funcA', 0), FunctionInstance('inst2', 'funcA', 1)],
      'funcB': [FunctionInstance('inst3', 'funcB', 2)],
      'idle': [],
  }
  shares = routing_weights(instances, units, config)
  assert set(shares) == {'funcA', 'funcB'}
  assert sum(shares['funcA'].values()) == pytest.approx(1.0)
  w1, w2 = instance_weight(units[0], config), instance_weight(units[1], config)
  assert shares['funcA']['inst1'] == pytest.approx(w1 / (w1 + w2))
  assert shares['funcB'] == {'inst3': pytest.approx(1.0)}


def test_saturated_hosts_split_evenly(config):
  units = [make_unit(0, cpu_usage=100.0), make_unit(1, cpu_usage=100.0)]
  instances = {'f': [FunctionInstance('a', 'f', 0), FunctionInstance('b', 'f', 1)]}
  assert routing_weights(instances, units, config) == {'f': {'a': 0.5, 'b': 0.5}}
