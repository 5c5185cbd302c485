"""Centralized hyperparameters for the placement simulator.

Every constant used by the cost model, weight adapter, autoscaler, lifecycle
manager and router lives in SIMULATION_CONFIG. Callers pass a (possibly
overridden) copy of it down to the component functions.
"""

import copy
import json
from typing import Any, Dict, Optional

from placement_tools.exceptions import ConfigurationError

WEIGHT_STRATEGIES = ('slope', 'logistic')
PLACEMENT_STRATEGIES = ('min_cost', 'feature_scored', 'ilp')

# ==============================================================================
# Centralized Hyperparameters
# ==============================================================================

SIMULATION_CONFIG = {
    # --- Weight Adapter ---
    'low_load_bound': 0.4,  # Load <= this uses the fixed low-load weights
    'medium_load_bound': 0.7,
    'low_load_weights': (0.5, 0.2, 0.2, 0.1),
    'medium_load_base': (0.4, 0.3, 0.2, 0.1),
    'medium_load_slope_factors': (0.1, 0.05, -0.05, -0.05),
    'high_load_base': (0.3, 0.4, 0.2, 0.1),
    'high_load_slope_factors': (0.1, 0.1, -0.05, -0.05),
    'clamp_negative_weights': True,
    'logistic_gamma': 1.0,  # Sensitivity of the sigmoid weights
    'logistic_delta': 0.3,  # Load threshold for the sigmoid weights
    'logistic_offsets': (0.0, 0.1, 0.2, 0.3),
    # --- Cost Model ---
    # Fixed weights used only for reporting total cost (4th factor unused).
    'reporting_weights': (0.3, 0.3, 0.3, 0.0),
    'prefetch_cost_multiplier': 0.05,
    'transfer_workload_penalty': 0.1,  # Weight of used/max in transfer choice
    # Per-instance cost lens of the pressure-based simulator.
    'instance_cost_weights': {
        'computation': 0.3,
        'transfer': 0.3,
        'retention': 0.1,
        'latency': 0.4,
    },
    'instance_computation_requirement': 1000.0,
    'instance_data_size': 0.02,
    'instance_latency_offset': 50.0,
    'instance_jitter_range': (0.01, 0.05),
    'retention_data_threshold': 0.5,
    'retention_cost_high': 0.1,
    'retention_cost_low': 0.05,
    # --- Retention Engine ---
    'retention_profiles': {'default': 0.5, 'strict': 0.3},
    'retention_profile': 'default',
    'retention_max_load': 0.7,
    # --- Pressure / Autoscaler ---
    'target_latency': 70.0,  # ms, centre of the RTT pressure sigmoid
    'rtt_steepness': 0.2,
    'max_cpu': 100.0,
    'pressure_threshold_high': 0.5,
    'pressure_threshold_low': 0.1,
    # --- Routing ---
    'routing_latency_center': 35.0,
    'routing_min_latency_factor': 0.01,
    'routing_scale': 100.0,
    # --- Feature-scored placement / policy ---
    'layer_size_jitter': (0.95, 1.05),
    'exploration_noise': (0.95, 1.05),
    'policy_iterations': 300,
    'policy_learning_rate': 0.01,
    'policy_online_updates': False,
    # --- Container Lifecycle ---
    'lifecycle_cost_variation': (0.1, 0.3),
    'zygote_conversion_cost': 0.1,
    'fork_cost': 0.05,
    'warm_invocation_cost': 0.02,
    'cold_start_cost': 0.3,
    'balance_cost': 0.05,
    # --- Workload jitter (external generator) ---
    # Multiplicative random noise ranges, e.g. (0.9, 1.1). (1, 1) disables.
    'request_jitter_range': (1, 1),
    'unit_jitter_range': (1, 1),
    # --- Tick loop ---
    'reset_capacity_each_tick': False,
}


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
  """Recursively merges overrides into base (in place) and returns base."""
  for key, value in overrides.items():
    if isinstance(value, dict) and isinstance(base.get(key), dict):
      _merge(base[key], value)
    elif isinstance(value, list):
      base[key] = tuple(value)
    else:
      base[key] = value
  return base


def make_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
  """Returns a validated deep copy of SIMULATION_CONFIG with overrides applied."""
  config = copy.deepcopy(SIMULATION_CONFIG)
  if overrides:
    unknown = sorted(set(overrides) - set(SIMULATION_CONFIG))
    if unknown:
      raise ConfigurationError(f'Unknown configuration keys: {unknown}')
    _merge(config, overrides)
  validate_config(config)
  return config


def load_config(path: Optional[str]) -> Dict[str, Any]:
  """Loads a JSON override file on top of the defaults."""
  if not path:
    return make_config()
  with open(path) as f:
    try:
      overrides = json.load(f)
    except json.JSONDecodeError as e:
      raise ConfigurationError(f'Invalid JSON in config file {path}: {e}') from e
  if not isinstance(overrides, dict):
    raise ConfigurationError('Config file must contain a JSON object.')
  return make_config(overrides)


def _check_range(config: Dict[str, Any], key: str) -> None:
  low, high = config[key]
  if low > high:
    raise ConfigurationError(f'{key} must be (low, high), got {config[key]}')


def validate_config(config: Dict[str, Any]) -> None:
  """Raises ConfigurationError if the configuration is inconsistent."""
  if config['pressure_threshold_high'] <= config['pressure_threshold_low']:
    raise ConfigurationError(
        'pressure_threshold_high must be greater than pressure_threshold_low'
        f" ({config['pressure_threshold_high']} <="
        f" {config['pressure_threshold_low']})"
    )
  if not 0.0 <= config['low_load_bound'] <= config['medium_load_bound']:
    raise ConfigurationError('Load bounds must satisfy 0 <= low <= medium.')
  if config['retention_profile'] not in config['retention_profiles']:
    raise ConfigurationError(
        f"Unknown retention profile: {config['retention_profile']}"
    )
  if config['max_cpu'] <= 0:
    raise ConfigurationError('max_cpu must be positive.')
  if config['policy_iterations'] < 0:
    raise ConfigurationError('policy_iterations must be non-negative.')
  for key in ('low_load_weights', 'medium_load_base', 'high_load_base',
              'medium_load_slope_factors', 'high_load_slope_factors',
              'logistic_offsets', 'reporting_weights'):
    if len(config[key]) != 4:
      raise ConfigurationError(f'{key} must have exactly 4 components.')
  for key in ('instance_jitter_range', 'layer_size_jitter', 'exploration_noise',
              'lifecycle_cost_variation', 'request_jitter_range',
              'unit_jitter_range'):
    _check_range(config, key)


def retention_threshold(config: Dict[str, Any]) -> float:
  return config['retention_profiles'][config['retention_profile']]
