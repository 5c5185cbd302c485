import pytest

from placement_tools.config import make_config
from placement_tools.data_structures import ResourceUnit, ServiceRequest
from placement_tools.workload_generators import FixedRandomSource


@pytest.fixture
def config():
  return make_config()


@pytest.fixture
def fixed_rng():
  return FixedRandomSource(0.5)


def make_unit(unit_id=0, **kwargs):
  defaults = dict(max_capacity=100.0, computation_cost=0.03, retention_cost=0.02,
                  preparation_cost=0.01)
  defaults.update(kwargs)
  return ResourceUnit(id=unit_id, **defaults)


def make_request(request_id=0, **kwargs):
  defaults = dict(deadline=4.0, computation_load=25.0, transfer_cost=0.025,
                  preparation_cost=0.02)
  defaults.update(kwargs)
  return ServiceRequest(id=request_id, **defaults)
