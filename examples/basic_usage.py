# python
import logging
from typing import Literal

from config_model import (
    CHILDREN,
    Child,
    LayeredConfig,
    SqliteBackend,
    Storage,
    base_metamodel,
    compile,
    from_string,
    node,
)

if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)

    model = compile(
        [base_metamodel()],
        [
            {
                "port": node(["value"], type=int, oneliner="Listen port"),
                "log": {
                    "level": node(
                        ["value"], type=Literal["debug", "info"], default="info", oneliner="Log level"
                    ),
                },
                "upstreams": node(
                    ["map"],
                    key_elements=["name"],
                    oneliner="Upstream servers",
                    children={
                        "name": node(["value"], type=str, oneliner="Server name"),
                        "port": node(["value"], type=int, default_ref=["port"], oneliner="Server port"),
                    },
                ),
            }
        ],
    )

    defaults = Storage(SqliteBackend())
    with LayeredConfig(model, [Storage(), defaults]) as config:
        print("Model valid:", config.meta_validate().ok)
        print("Empty config:", [str(e) for e in config.validate().errors])

        config.set(["port"], from_string(model, ["port"], "8080"), layer=1)
        config.patch(
            [
                ("set", ["upstreams", Child("cache"), "name"], "cache"),
                ("set", ["upstreams", Child("db"), "name"], "db"),
                ("set", ["upstreams", Child("db"), "port"], 5432),
            ]
        )
        print("Config valid:", config.validate(raise_on_error=True).ok)
        print("Log level:", config.get(["log", "level"]))
        for upstream in config.list(["upstreams", CHILDREN]):
            print(upstream, "->", config.get(upstream + ("port",)))
