"""Load-aware edge/fog function placement, autoscaling and container lifecycle simulator."""

__version__ = '0.1.0'
