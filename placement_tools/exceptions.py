"""Errors raised by the placement tools."""


class PlacementError(Exception):
  """Base class for placement tool errors."""


class CapacityInvariantError(PlacementError):
  """An assignment would push a unit past its maximum capacity.

  The placement engine checks feasibility before every assignment, so this
  signals an internal-consistency bug and is never caught by the tick loop.
  """

  def __init__(self, unit_id, used, amount, maximum):
    super().__init__(
        f'Unit {unit_id}: assigning {amount} on top of {used} exceeds'
        f' max capacity {maximum}'
    )
    self.unit_id = unit_id
    self.used = used
    self.amount = amount
    self.maximum = maximum


class ConfigurationError(PlacementError, ValueError):
  """Invalid run parameter or configuration value."""
