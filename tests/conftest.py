import pytest

from fakes import FakePresentation


@pytest.fixture
def presentation():
    return FakePresentation()
