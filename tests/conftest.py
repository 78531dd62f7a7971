import pytest
from objrpc.registry import build
from receivers import RecordsAPI, SampleAPI, ShapesAPI


@pytest.fixture
def sample_registry():
    return build(SampleAPI())


@pytest.fixture
def shapes():
    return ShapesAPI()


@pytest.fixture
def shapes_registry(shapes):
    return build(shapes)


@pytest.fixture
def records():
    return RecordsAPI()


@pytest.fixture
def records_registry(records):
    return build(records)
