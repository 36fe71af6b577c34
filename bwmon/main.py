"""bwmon command line — pick providers and consumers, then run the poll loop."""

from __future__ import annotations

import argparse
import logging
import sys

import yaml

import bwmon
from bwmon.base import BaseInput, BaseOutput, InputError
from bwmon.config import X_UNITS, Y_UNITS, settings_from_args
from bwmon.context import Context
from bwmon.loop import Shutdown, run

log = logging.getLogger("bwmon")


def setup_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.WARNING)
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        level=level,
        stream=sys.stderr,
    )
    logging.getLogger().setLevel(level)


def list_modules(registry: dict) -> None:
    for name, cls in registry.items():
        aliases = [a for a, canon in bwmon.ALIASES.items() if canon == name]
        alias_str = f"  (aka {', '.join(aliases)})" if aliases else ""
        avail = "✓" if cls.is_available() else "✗"
        print(f"  {avail}  {name:12s}  {cls.description}{alias_str}")


def select_modules(registry: dict, names: list[str], kind: str) -> list[type]:
    """Resolve names against a registry. Exits on unknown or unavailable names."""
    if not names:
        for cls in registry.values():
            if cls.is_available():
                log.info("Auto-selected %s %s", kind, cls.name)
                return [cls]
        print(f"No {kind} available on this system.", file=sys.stderr)
        sys.exit(1)

    selected = []
    for name in names:
        canonical = bwmon.resolve(name)
        if canonical not in registry:
            all_names = sorted(set(registry) | {a for a, c in bwmon.ALIASES.items() if c in registry})
            print(f"Unknown {kind}: {name}", file=sys.stderr)
            print(f"Available: {', '.join(all_names)}", file=sys.stderr)
            sys.exit(1)
        cls = registry[canonical]
        if not cls.is_available():
            print(f"{kind.capitalize()} '{canonical}' is not available on this system.", file=sys.stderr)
            sys.exit(1)
        if cls not in selected:
            selected.append(cls)
    return selected


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bwmon",
        description="Bandwidth monitor: per-interface rates and history.",
        epilog="Settings come from defaults, then --config, then BWMON_* env vars, then flags.",
    )
    parser.add_argument("-i", "--input", default=None,
                        help="Input provider(s), comma separated (default: first available)")
    parser.add_argument("-o", "--output", default=None,
                        help="Output consumer(s), comma separated (default: ascii)")
    parser.add_argument("-f", "--config", default=None,
                        help="YAML configuration file")
    parser.add_argument("-p", "--policy", default=None,
                        help="Interface policy, e.g. 'eth*,!eth1'")
    parser.add_argument("-r", "--read-interval", type=float, default=None,
                        help="Seconds between reads (default: 1.0)")
    parser.add_argument("-s", "--sleep-time", type=float, default=None,
                        help="Upper bound of one scheduler sleep in seconds (default: 0.02)")
    parser.add_argument("--lifetime", type=int, default=None,
                        help="Ticks an unseen interface survives (default: 10)")
    parser.add_argument("-a", "--show-all", action="store_true",
                        help="Include interfaces whose link is down")
    parser.add_argument("--x-unit", choices=X_UNITS, default=None,
                        help="History resolution to draw (default: sec)")
    parser.add_argument("--y-unit", choices=Y_UNITS, default=None,
                        help="Byte unit for rates (default: dynamic)")
    parser.add_argument("--no-tc", action="store_true",
                        help="Do not collect traffic-control qdiscs and classes")
    parser.add_argument("--list", action="store_true", dest="list_modules",
                        help="List input providers and output consumers, then exit")
    parser.add_argument("--log-level", default=None,
                        help="Logging level (default: WARNING)")

    for cls in [*bwmon.INPUTS.values(), *bwmon.OUTPUTS.values()]:
        cls.add_args(parser)
    return parser


def main(argv: list[str] | None = None) -> int:
    bwmon.load_modules()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list_modules:
        print("Input providers:")
        list_modules(bwmon.INPUTS)
        print("Output consumers:")
        list_modules(bwmon.OUTPUTS)
        return 0

    setup_logging(args.log_level or "WARNING")
    try:
        settings = settings_from_args(args)
    except (OSError, yaml.YAMLError) as exc:
        log.error("Cannot load config %s: %s", args.config, exc)
        return 1
    setup_logging(settings.log_level)

    input_classes = select_modules(bwmon.INPUTS, settings.inputs, "input")
    output_classes = select_modules(bwmon.OUTPUTS, settings.outputs, "output")

    ctx = Context(settings)
    shutdown = Shutdown()
    shutdown.install()

    try:
        inputs: list[BaseInput] = []
        for cls in input_classes:
            inp = cls(ctx, args)
            shutdown.register(inp.shutdown)
            inputs.append(inp)

        outputs: list[BaseOutput] = []
        for cls in output_classes:
            out = cls(ctx, args)
            shutdown.register(out.shutdown)
            outputs.append(out)

        log.info("Reading %s every %.2fs, drawing with %s",
                 ", ".join(i.name for i in inputs), settings.read_interval,
                 ", ".join(o.name for o in outputs))
        run(ctx, inputs, outputs)
    except InputError as exc:
        log.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        pass
    finally:
        shutdown()

    return 0


if __name__ == "__main__":
    sys.exit(main())
