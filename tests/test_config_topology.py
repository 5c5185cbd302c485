import json

import pytest

from placement_tools.config import SIMULATION_CONFIG, load_config, make_config, retention_threshold
from placement_tools.exceptions import ConfigurationError
from placement_tools.topology import (
    default_topology,
    load_topology,
    topology_from_dict,
    topology_to_dict,
)


def test_defaults_are_not_shared():
  config = make_config()
  config['instance_cost_weights']['latency'] = 1.0
  assert SIMULATION_CONFIG['instance_cost_weights']['latency'] == 0.4


def test_overrides_merge_nested_and_tuple_values():
  config = make_config({'instance_cost_weights': {'latency': 0.5},
                        'request_jitter_range': [0.9, 1.1]})
  assert config['instance_cost_weights'] == {
      'computation': 0.3, 'transfer': 0.3, 'retention': 0.1, 'latency': 0.5}
  assert config['request_jitter_range'] == (0.9, 1.1)


def test_unknown_keys_rejected():
  with pytest.raises(ConfigurationError, match='retention_treshold'):
    make_config({'retention_treshold': 0.4})


@pytest.mark.parametrize('overrides', [
    {'low_load_bound': 0.8},
    {'retention_profile': 'lenient'},
    {'max_cpu': 0},
    {'low_load_weights': [0.5, 0.5]},
    {'exploration_noise': [1.2, 0.8]},
])
def test_inconsistent_config_rejected(overrides):
  with pytest.raises(ConfigurationError):
    make_config(overrides)


def test_retention_profiles():
  assert retention_threshold(make_config()) == 0.5
  assert retention_threshold(make_config({'retention_profile': 'strict'})) == 0.3


def test_load_config_from_file(tmp_path):
  path = tmp_path / 'config.json'
  path.write_text(json.dumps({'pressure_threshold_high': 0.6}))
  assert load_config(str(path))['pressure_threshold_high'] == 0.6
  assert load_config(None) == make_config()


def test_load_config_rejects_bad_files(tmp_path):
  bad_json = tmp_path / 'bad.json'
  bad_json.write_text('{not json')
  with pytest.raises(ConfigurationError):
    load_config(str(bad_json))
  not_object = tmp_path / 'list.json'
  not_object.write_text('[1, 2]')
  with pytest.raises(ConfigurationError):
    load_config(str(not_object))


def test_topology_round_trips_through_json(tmp_path):
  topology = default_topology()
  path = tmp_path / 'topology.json'
  path.write_text(json.dumps(topology_to_dict(topology)))
  loaded = load_topology(str(path))
  assert topology_to_dict(loaded) == topology_to_dict(topology)
  assert loaded.dependencies == [('FunctionA', 'FunctionB'), ('FunctionB', 'FunctionA')]


def test_topology_requires_units():
  with pytest.raises(ConfigurationError, match='units'):
    topology_from_dict({'requests': []})


def _minimal(**extra):
  data = {
      'units': [{'id': 0, 'max_capacity': 10.0}],
      'requests': [{'id': 0, 'deadline': 1.0, 'computation_load': 1.0,
                    'transfer_cost': 0.0, 'preparation_cost': 0.0}],
  }
  data.update(extra)
  return data


@pytest.mark.parametrize('data', [
    _minimal(instances=[{'id': 'i', 'function_name': 'f', 'unit_index': 3}]),
    _minimal(units=[{'id': 0, 'max_capacity': 1.0}, {'id': 0, 'max_capacity': 1.0}]),
    _minimal(units=[{'id': 0, 'max_capacity': 1.0, 'used_capacity': 2.0}]),
    _minimal(units=[{'id': 0, 'capacity': 1.0}]),
    _minimal(containers=[{'function_name': 'f', 'state': 'frozen'}]),
    _minimal(dependencies=[['a', 'b', 'c']]),
])
def test_topology_validation(data):
  with pytest.raises(ConfigurationError):
    topology_from_dict(data)
