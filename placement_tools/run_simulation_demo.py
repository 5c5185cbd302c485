#!/usr/bin/env python3
"""Main script to run the placement simulation from the command line.

Loads a topology (or the built-in demo), applies config overrides, runs the
tick loop and prints the per-tick metrics. Optionally writes the metrics
stream to a JSON file.
"""

import argparse
import copy
import json
import logging
import sys

from placement_tools.config import PLACEMENT_STRATEGIES, WEIGHT_STRATEGIES, load_config
from placement_tools.data_structures import WeightAdapterState
from placement_tools.exceptions import ConfigurationError
from placement_tools.ilp_solver import greedy_gap, solve_placement_ilp
from placement_tools.placement import place_min_cost
from placement_tools.simulator import SimulationParameters, run_simulation
from placement_tools.topology import default_topology, load_topology
from placement_tools.weight_adapter import compute_weights, system_load


def build_parser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(
      description=(
          'Simulate load-aware function placement, retention, autoscaling and'
          ' container lifecycle over discrete ticks.'
      ),
  )
  parser.add_argument('--topology_file', type=str, default=None,
                      help='JSON topology; the built-in demo is used if omitted.')
  parser.add_argument('--config_file', type=str, default=None,
                      help='JSON object overriding SIMULATION_CONFIG keys.')
  parser.add_argument('--ticks', type=int, default=5)
  parser.add_argument('--seed', type=int, default=None)
  parser.add_argument('--weight_strategy', choices=WEIGHT_STRATEGIES, default='slope')
  parser.add_argument('--placement_strategy', choices=PLACEMENT_STRATEGIES,
                      default='min_cost')
  parser.add_argument('--retention_threshold', type=float, default=None)
  parser.add_argument('--reset_capacity', action='store_true',
                      help='Release all unit capacity at the start of every tick.')
  parser.add_argument('--compare_ilp', action='store_true',
                      help='Report the greedy-vs-optimal gap on the initial topology.')
  parser.add_argument('--output_file', type=str, default=None)
  parser.add_argument('--log_level', type=str, default='WARNING')
  return parser


def print_ilp_comparison(topology, config, weight_strategy):
  """Solves the first tick's placement both ways on copies of the units."""
  load = system_load(topology.units)
  weights, _ = compute_weights(weight_strategy, load, WeightAdapterState(), config)
  greedy = place_min_cost(topology.requests, copy.deepcopy(topology.units), weights)
  optimal = solve_placement_ilp(topology.requests, copy.deepcopy(topology.units), weights)
  print('\nGreedy vs. ILP placement on the initial topology:')
  if optimal is None:
    print('  Solver failed to find an optimal solution.')
    return
  for key, value in greedy_gap(greedy, optimal).items():
    print(f'  {key}: {value}')


def main(argv=None) -> int:
  args = build_parser().parse_args(argv)
  logging.basicConfig(
      level=getattr(logging, args.log_level.upper(), logging.WARNING),
      format='%(asctime)s %(levelname)s %(name)s: %(message)s',
  )

  try:
    config = load_config(args.config_file)
    topology = load_topology(args.topology_file) if args.topology_file else default_topology()
    params = SimulationParameters(
        ticks=args.ticks,
        seed=args.seed,
        weight_strategy=args.weight_strategy,
        placement_strategy=args.placement_strategy,
        retention_threshold=args.retention_threshold,
        reset_capacity_each_tick=True if args.reset_capacity else None,
        progress=True,
    )
    print('===== Running Placement Simulation =====')
    print(
        f'{len(topology.units)} units, {len(topology.requests)} requests,'
        f' {len(topology.bundles)} prefetch bundles, {params.ticks} ticks'
        f' ({params.weight_strategy} weights, {params.placement_strategy} placement)'
    )
    result = run_simulation(topology, params, config)
  except ConfigurationError as e:
    print(f'Error: {e}')
    return 1
  except OSError as e:
    print(f'Error reading input: {e}')
    return 1

  for record in result.records:
    print(
        f'Time Slot {record.tick}: Total Cost = {record.total_cost:.6f},'
        f' Total Latency = {record.total_latency:.4f} microseconds,'
        f' Assigned = {len(record.assignments)}, Starved = {len(record.starved)},'
        f' Unserved invocations = {len(record.unserved)}'
    )
  print(f'\nOverall latency across all time slots: {result.cumulative_latency:.4f} microseconds')
  print(f'Requests starved across all time slots: {result.total_starved}')

  if args.compare_ilp:
    print_ilp_comparison(topology, config, args.weight_strategy)

  if args.output_file:
    print(f'\nSaving metrics to {args.output_file}...')
    with open(args.output_file, 'w') as f:
      json.dump(result.to_dict(), f, indent=2)
    print('File saved successfully.')

  print('\n===== Simulation Complete =====')
  return 0


if __name__ == '__main__':
  sys.exit(main())
