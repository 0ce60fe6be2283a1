# python
from typing import Literal

import pytest

from config_model import Storage, base_metamodel, compile, node
from config_model.metatypes import BUILTIN_METATYPES, REGISTRY


def sample_namespace():
    return {
        "port": node(["value"], type=int, oneliner="Listen port"),
        "timeout": node(["value"], type=int, default=30, oneliner="Request timeout, seconds"),
        "log": {
            "level": node(
                ["value"],
                type=Literal["debug", "info", "error"],
                default="info",
                oneliner="Log level",
            ),
        },
        "hosts": node(
            ["map"],
            key_elements=[["name"]],
            oneliner="Upstream hosts",
            children={
                "name": node(["value"], type=str, oneliner="Host name"),
                "port": node(["value"], type=int, default_ref=["port"], oneliner="Host port"),
            },
        ),
    }


@pytest.fixture(autouse=True)
def reset_registry():
    yield
    REGISTRY.clear()
    for mt in BUILTIN_METATYPES:
        REGISTRY.register(mt)


@pytest.fixture
def sample_ns():
    return sample_namespace()


@pytest.fixture
def model():
    return compile([base_metamodel()], [sample_namespace()])


@pytest.fixture
def data():
    return Storage()
