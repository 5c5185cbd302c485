"""Composite [0, 1] pressure score per unit from backlog, RTT and utilization."""

from typing import Any, Dict

from placement_tools.config import SIMULATION_CONFIG
from placement_tools.data_structures import ResourceUnit
from placement_tools.weight_adapter import sigmoid


def _clamp(value: float) -> float:
  return min(1.0, max(0.0, value))


def request_pressure(replicas: int, max_replicas: int) -> float:
  if max_replicas <= 0:
    return 1.0
  return _clamp(replicas / max_replicas)


def performance_pressure(
    rtt: float, target_rtt: float, steepness: float = 0.2
) -> float:
  return sigmoid(steepness * (rtt - target_rtt))


def resource_pressure(cpu_usage: float, max_cpu: float) -> float:
  return _clamp(cpu_usage / max_cpu)


def combine(p_req: float, p_rtt: float, p_res: float) -> float:
  return p_req * p_rtt * p_res


def unit_pressure(
    unit: ResourceUnit, config: Dict[str, Any] = SIMULATION_CONFIG
) -> float:
  return combine(
      request_pressure(unit.replicas, unit.max_replicas),
      performance_pressure(
          unit.network_latency, config['target_latency'], config['rtt_steepness']
      ),
      resource_pressure(unit.cpu_usage, config['max_cpu']),
  )
