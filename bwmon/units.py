"""Unit scaling for byte counts and rates."""

from __future__ import annotations

SIZE_UNITS = [("B", 1), ("KiB", 1024), ("MiB", 1024**2), ("GiB", 1024**3), ("TiB", 1024**4)]

# y unit name → fixed unit; "dynamic" picks one per value
FIXED_UNITS = {
    "byte": SIZE_UNITS[0],
    "kilo": SIZE_UNITS[1],
    "mega": SIZE_UNITS[2],
    "giga": SIZE_UNITS[3],
    "tera": SIZE_UNITS[4],
}


def pick_unit(max_val: float, units: list[tuple[str, int]] | None = None) -> tuple[str, int]:
    """Choose the largest unit not exceeding the value."""
    if units is None:
        units = SIZE_UNITS
    for name, divisor in reversed(units):
        if max_val >= divisor:
            return name, divisor
    return units[0]


def sumup(value: float, y_unit: str = "dynamic") -> tuple[float, str]:
    """Scale value to the configured unit. Returns (scaled, unit name)."""
    if y_unit in FIXED_UNITS:
        name, divisor = FIXED_UNITS[y_unit]
    else:
        name, divisor = pick_unit(value)
    return value / divisor, name


def get_divisor(hint: float, y_unit: str = "dynamic") -> tuple[int, str]:
    """Divisor and unit name for a graph scale; dynamic scaling stops at GiB."""
    if y_unit in FIXED_UNITS:
        name, divisor = FIXED_UNITS[y_unit]
        return divisor, name
    name, divisor = pick_unit(hint, SIZE_UNITS[:4])
    return divisor, name


def format_rate(bps: float, y_unit: str = "dynamic") -> str:
    """Format a bytes/s value into a human-readable string."""
    value, name = sumup(bps, y_unit)
    if name == "B":
        return f"{value:.0f} B/s"
    return f"{value:.2f} {name}/s"
