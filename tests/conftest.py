import pytest

from deckport.services.pptx.context import ParseContext
from pptx_builders import PackageBuilder


@pytest.fixture
def builder() -> PackageBuilder:
    return PackageBuilder()


@pytest.fixture
def ctx() -> ParseContext:
    return ParseContext()
