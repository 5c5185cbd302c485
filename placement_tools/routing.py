"""Advisory traffic-split weights across the live instances of each function."""

from typing import Any, Dict, Mapping, Sequence

from placement_tools.config import SIMULATION_CONFIG
from placement_tools.data_structures import FunctionInstance, ResourceUnit
from placement_tools.weight_adapter import sigmoid


def instance_weight(
    unit: ResourceUnit, config: Dict[str, Any] = SIMULATION_CONFIG
) -> float:
  latency_factor = max(
      config['routing_min_latency_factor'],
      sigmoid(config['rtt_steepness'] * (unit.network_latency - config['routing_latency_center'])),
  )
  cpu_factor = 1.0 - unit.cpu_usage / config['max_cpu']
  return latency_factor * cpu_factor * config['routing_scale']


def routing_weights(
    instances: Mapping[str, Sequence[FunctionInstance]],
    units: Sequence[ResourceUnit],
    config: Dict[str, Any] = SIMULATION_CONFIG,
) -> Dict[str, Dict[str, float]]:
  """Returns function -> instance id -> traffic share (shares sum to 1).

  Hosts are resolved through units by each instance's unit_index. A function
  whose weights sum to zero (e.g. every host at 100% CPU) is split evenly.
  """
  shares = {}
  for function_name, function_instances in instances.items():
    if not function_instances:
      continue
    weights = {
        inst.id: max(0.0, instance_weight(units[inst.unit_index], config))
        for inst in function_instances
    }
    total = sum(weights.values())
    if total <= 0:
      even = 1.0 / len(weights)
      shares[function_name] = {inst_id: even for inst_id in weights}
    else:
      shares[function_name] = {inst_id: w / total for inst_id, w in weights.items()}
  return shares
