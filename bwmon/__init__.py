"""bwmon — bandwidth monitor with per-interface rate and history tracking.

Input providers and output consumers are BaseInput / BaseOutput subclasses
living in their own modules under bwmon.inputs and bwmon.outputs.
Import a module to register it in INPUTS or OUTPUTS.
"""

from bwmon.base import BaseInput, BaseOutput

INPUTS: dict[str, type[BaseInput]] = {}
OUTPUTS: dict[str, type[BaseOutput]] = {}

# Short aliases → canonical name
ALIASES: dict[str, str] = {
    "netdev": "proc",
    "sys": "sysfs",
    "ps": "psutil",
    "text": "ascii",
    "curses": "tui",
}


def register_input(cls: type[BaseInput]) -> type[BaseInput]:
    """Decorator that adds an input provider class to the registry."""
    INPUTS[cls.name] = cls
    return cls


def register_output(cls: type[BaseOutput]) -> type[BaseOutput]:
    """Decorator that adds an output consumer class to the registry."""
    OUTPUTS[cls.name] = cls
    return cls


def resolve(name: str) -> str:
    """Resolve a provider/consumer name, supporting aliases."""
    return ALIASES.get(name, name)


def load_modules() -> None:
    """Import every bundled provider and consumer so they register themselves."""
    import bwmon.inputs.proc  # noqa: F401
    import bwmon.inputs.sysfs  # noqa: F401
    import bwmon.inputs.pstat  # noqa: F401
    import bwmon.outputs.ascii  # noqa: F401
    import bwmon.outputs.tui  # noqa: F401
