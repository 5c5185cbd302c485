"""Input topology for a simulation run: units, requests and container setup.

load_topology reads the JSON shape produced by topology_to_dict;
default_topology builds the small mixed edge/cloud demo used by the CLI.
"""

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Tuple

from placement_tools.data_structures import (
    Container,
    ContainerImage,
    ContainerState,
    FunctionInstance,
    Layer,
    PrefetchBundle,
    ResourceUnit,
    ServiceRequest,
)
from placement_tools.exceptions import ConfigurationError


@dataclass
class Topology:
  """Everything the caller supplies to a run. The simulator works on a copy."""
  units: List[ResourceUnit]
  requests: List[ServiceRequest]
  bundles: List[PrefetchBundle] = field(default_factory=list)
  images: Dict[int, ContainerImage] = field(default_factory=dict)
  layers: Dict[int, Layer] = field(default_factory=dict)
  instances: Dict[str, List[FunctionInstance]] = field(default_factory=dict)
  dependencies: List[Tuple[str, str]] = field(default_factory=list)  # (helper, target)
  containers: List[Container] = field(default_factory=list)


def topology_from_dict(data: Dict[str, Any]) -> Topology:
  """Builds a Topology from plain dicts/lists, validating required sections."""
  for key in ('units', 'requests'):
    if key not in data:
      raise ConfigurationError(f'Topology is missing required section: {key}')
  try:
    units = [ResourceUnit(**u) for u in data['units']]
    requests = [ServiceRequest(**r) for r in data['requests']]
    bundles = [PrefetchBundle(**b) for b in data.get('bundles', [])]
    images = {i['id']: ContainerImage(**i) for i in data.get('images', [])}
    layers = {l['id']: Layer(**l) for l in data.get('layers', [])}
    instances: Dict[str, List[FunctionInstance]] = {}
    for inst in data.get('instances', []):
      instance = FunctionInstance(**inst)
      instances.setdefault(instance.function_name, []).append(instance)
    containers = [
        Container(
            function_name=c['function_name'],
            state=ContainerState(c.get('state', 'private')),
            idle=c.get('idle', True),
            origin_function=c.get('origin_function'),
        )
        for c in data.get('containers', [])
    ]
  except (TypeError, ValueError, KeyError) as e:
    raise ConfigurationError(f'Malformed topology: {e}') from e

  dependencies = [tuple(edge) for edge in data.get('dependencies', [])]
  if any(len(edge) != 2 for edge in dependencies):
    raise ConfigurationError('Each dependency must be a [helper, target] pair.')

  ids = [u.id for u in units]
  if len(set(ids)) != len(ids):
    raise ConfigurationError(f'Duplicate unit ids: {ids}')
  for unit in units:
    if unit.used_capacity > unit.max_capacity:
      raise ConfigurationError(
          f'Unit {unit.id} starts above capacity'
          f' ({unit.used_capacity} > {unit.max_capacity})'
      )
  for function_instances in instances.values():
    for inst in function_instances:
      if not 0 <= inst.unit_index < len(units):
        raise ConfigurationError(
            f'Instance {inst.id} refers to unknown unit index {inst.unit_index}'
        )

  return Topology(
      units=units,
      requests=requests,
      bundles=bundles,
      images=images,
      layers=layers,
      instances=instances,
      dependencies=dependencies,
      containers=containers,
  )


def topology_to_dict(topology: Topology) -> Dict[str, Any]:
  return {
      'units': [asdict(u) for u in topology.units],
      'requests': [asdict(r) for r in topology.requests],
      'bundles': [asdict(b) for b in topology.bundles],
      'images': [asdict(i) for i in topology.images.values()],
      'layers': [asdict(l) for l in topology.layers.values()],
      'instances': [asdict(i) for insts in topology.instances.values() for i in insts],
      'dependencies': [list(edge) for edge in topology.dependencies],
      'containers': [
          {
              'function_name': c.function_name,
              'state': c.state.value,
              'idle': c.idle,
              'origin_function': c.origin_function,
          }
          for c in topology.containers
      ],
  }


def load_topology(path: str) -> Topology:
  with open(path) as f:
    try:
      data = json.load(f)
    except json.JSONDecodeError as e:
      raise ConfigurationError(f'Invalid JSON in topology file {path}: {e}') from e
  return topology_from_dict(data)


def default_topology() -> Topology:
  """Two edge units and one cloud unit serving two mutually helpful functions."""
  units = [
      ResourceUnit(
          id=0, max_capacity=110.0, retention_cost=0.02, computation_cost=0.03,
          preparation_cost=0.01, network_latency=50.0, cpu_usage=30.0,
          replicas=3, max_replicas=10, cpu_frequency=1.2, bandwidth=100.0,
          storage_capacity=15.0, max_containers=10, local_layers=[1, 2],
      ),
      ResourceUnit(
          id=1, max_capacity=120.0, retention_cost=0.04, computation_cost=0.02,
          preparation_cost=0.025, network_latency=60.0, cpu_usage=40.0,
          replicas=2, max_replicas=10, cpu_frequency=0.9, bandwidth=80.0,
          storage_capacity=10.0, max_containers=8, local_layers=[3, 4],
      ),
      ResourceUnit(
          id=2, max_capacity=130.0, retention_cost=0.025, computation_cost=0.05,
          preparation_cost=0.02, network_latency=150.0, cpu_usage=70.0,
          replicas=5, max_replicas=20, cpu_frequency=2.0, bandwidth=50.0,
          storage_capacity=40.0, max_containers=20,
      ),
  ]
  requests = [
      ServiceRequest(
          id=0, deadline=4.0, computation_load=25.0, transfer_cost=0.025,
          preparation_cost=0.02, demand=10.0, distance_to_unit=110.0,
          function_name='FunctionA', requested_image=0, data_size=1000.0,
          computation_requirement=50.0,
      ),
      ServiceRequest(
          id=1, deadline=5.0, computation_load=35.0, transfer_cost=0.035,
          preparation_cost=0.02, demand=15.0, distance_to_unit=130.0,
          function_name='FunctionB', requested_image=1, data_size=1500.0,
          computation_requirement=100.0,
      ),
      ServiceRequest(
          id=2, deadline=2.0, computation_load=12.0, transfer_cost=0.015,
          preparation_cost=0.008, demand=5.0, distance_to_unit=90.0,
          function_name='FunctionA', requested_image=0, data_size=800.0,
          computation_requirement=30.0,
      ),
  ]
  layers = [
      Layer(id=1, size=2.5, exists_locally=True),
      Layer(id=2, size=3.0, exists_locally=True),
      Layer(id=3, size=1.5, exists_locally=True),
      Layer(id=4, size=4.0, exists_locally=False, download_time=5.0),
  ]
  images = [ContainerImage(id=0, layers=[1, 2]), ContainerImage(id=1, layers=[3, 4])]
  return Topology(
      units=units,
      requests=requests,
      bundles=[
          PrefetchBundle(id=0, size=10.0, prefetch_cost=2.0),
          PrefetchBundle(id=1, size=15.0, prefetch_cost=3.0),
          PrefetchBundle(id=2, size=8.0, prefetch_cost=1.5),
      ],
      images={i.id: i for i in images},
      layers={l.id: l for l in layers},
      instances={
          'FunctionA': [
              FunctionInstance(id='inst1', function_name='FunctionA', unit_index=0),
              FunctionInstance(id='inst2', function_name='FunctionA', unit_index=1),
          ],
      },
      dependencies=[('FunctionA', 'FunctionB'), ('FunctionB', 'FunctionA')],
      containers=[
          Container(function_name='FunctionA'),
          Container(function_name='FunctionB'),
      ],
  )
